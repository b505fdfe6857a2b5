"""Pytest fixtures for deapi_bridge tests."""

import io
import json
import time
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image
from requests.structures import CaseInsensitiveDict

from deapi_bridge.config import BridgeArgs, Credentials
from deapi_bridge.host import ExecutionStore, LocalExecutionHost
from deapi_bridge.models import BinaryData, WorkflowItem
from deapi_bridge.signature import compute_signature
from deapi_bridge.storage import FileBinaryStore

API_BASE_URL = "https://api.test/api/v1/client"
PUBLIC_URL = "http://bridge.test"
WEBHOOK_SECRET = "whsec-test"


def make_response(
    status_code: int = 200,
    content: bytes = b"",
    headers: dict | None = None,
    url: str = API_BASE_URL,
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    response.reason = "Test"
    response.encoding = "utf-8"
    return response


def json_response(payload, status_code: int = 200) -> requests.Response:
    return make_response(
        status_code,
        json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(api_key="test-api-key", webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def fake_session() -> MagicMock:
    """A requests.Session whose every request answers with a queued job."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = json_response({"data": {"request_id": "req-1"}})
    return session


@pytest.fixture
def binary_store(tmp_path: Path) -> FileBinaryStore:
    return FileBinaryStore(tmp_path / "binaries")


@pytest.fixture
def execution_store() -> ExecutionStore:
    return ExecutionStore()


@pytest.fixture
def make_host(credentials, fake_session, binary_store, execution_store) -> Callable[..., LocalExecutionHost]:
    """Factory for a LocalExecutionHost wired to the fake session."""

    def _make(parameters: dict, items: list[WorkflowItem] | None = None, continue_on_fail: bool = False):
        return LocalExecutionHost(
            items if items is not None else [WorkflowItem(json_data={"input": 1})],
            parameters,
            credentials,
            store=execution_store,
            continue_on_fail=continue_on_fail,
            public_url=PUBLIC_URL,
            api_base_url=API_BASE_URL,
            session=fake_session,
            binary_store=binary_store,
        )

    return _make


@pytest.fixture
def signed_headers() -> Callable[..., dict]:
    """Build X-Signature / X-Timestamp headers for a raw body."""

    def _sign(raw_body: bytes, secret: str = WEBHOOK_SECRET, timestamp: str | None = None) -> dict:
        timestamp = timestamp or str(int(time.time()))
        return {
            "X-Signature": compute_signature(secret, timestamp, raw_body),
            "X-Timestamp": timestamp,
        }

    return _sign


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 3), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def image_item(png_bytes) -> WorkflowItem:
    return WorkflowItem(
        json_data={"name": "cat"},
        binary={"data": BinaryData(file_name="cat.png", mime_type="image/png", data=png_bytes)},
    )


@pytest.fixture
def bridge_args(tmp_path: Path) -> BridgeArgs:
    args = BridgeArgs()
    args.api_base_url = API_BASE_URL
    args.public_url = PUBLIC_URL
    args.binary_dir = str(tmp_path / "server-binaries")
    return args
