import io
import mimetypes
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

import requests
from PIL import Image
from pydantic import BaseModel, Field

from deapi_bridge.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_INLINE_BINARY_LIMIT,
    DEFAULT_PUBLIC_URL,
    Credentials,
)
from deapi_bridge.errors import OperationError
from deapi_bridge.logger import get_logger
from deapi_bridge.models import BinaryData, WorkflowItem
from deapi_bridge.storage import FileBinaryStore

logger = get_logger(__name__)

_MISSING = object()


class WebhookHost:
    """What a webhook handler needs from the engine that received the callback."""

    def http_request(self, method: str, url: str, **kwargs) -> requests.Response:
        raise NotImplementedError

    def prepare_binary_data(self, content: bytes, filename: str, mime_type: str | None) -> BinaryData:
        raise NotImplementedError


class ExecutionHost(WebhookHost):
    """What an operation needs from the engine running a workflow execution."""

    api_base_url: str = DEFAULT_API_BASE_URL

    def get_input_data(self) -> list[WorkflowItem]:
        raise NotImplementedError

    def get_node_parameter(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        raise NotImplementedError

    def continue_on_fail(self) -> bool:
        raise NotImplementedError

    def put_execution_to_wait(self, wait_till: datetime) -> None:
        raise NotImplementedError

    def get_resume_url(self) -> str:
        raise NotImplementedError

    def http_request_with_authentication(self, method: str, url: str, **kwargs) -> requests.Response:
        raise NotImplementedError

    def assert_binary_data(self, item_index: int, property_name: str) -> BinaryData:
        raise NotImplementedError

    def get_binary_data_buffer(self, item_index: int, property_name: str) -> bytes:
        raise NotImplementedError

    def get_binary_stream(self, binary_id: str, chunk_size: int) -> Iterator[bytes]:
        raise NotImplementedError


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    WAITING = "waiting"
    SUCCESS = "success"
    ERROR = "error"
    EXPIRED = "expired"


class Execution(BaseModel):
    id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    wait_till: datetime | None = None
    data: list[WorkflowItem] = Field(default_factory=list)
    error: str | None = None

    def is_overdue(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.wait_till is not None and now > self.wait_till


class ExecutionStore:
    """Thread-safe record of executions started on this host."""

    def __init__(self):
        self._executions: dict[str, Execution] = {}
        self._lock = threading.Lock()

    def create(self) -> Execution:
        execution = Execution(id=uuid.uuid4().hex)
        with self._lock:
            self._executions[execution.id] = execution
        return execution.model_copy()

    def get(self, execution_id: str) -> Execution | None:
        with self._lock:
            execution = self._executions.get(execution_id)
            return execution.model_copy() if execution else None

    def wait(self, execution_id: str, wait_till: datetime) -> None:
        with self._lock:
            execution = self._executions[execution_id]
            execution.status = ExecutionStatus.WAITING
            execution.wait_till = wait_till

    def finish_if_running(self, execution_id: str, data: list[WorkflowItem]) -> bool:
        """Finish an execution that never waited. Waiting or resumed executions are left alone."""
        with self._lock:
            execution = self._executions[execution_id]
            if execution.status != ExecutionStatus.RUNNING:
                return False
            execution.status = ExecutionStatus.SUCCESS
            execution.data = data
            return True

    def fail(self, execution_id: str, error: str) -> None:
        with self._lock:
            execution = self._executions[execution_id]
            execution.status = ExecutionStatus.ERROR
            execution.error = error

    def resume(self, execution_id: str, data: list[WorkflowItem]) -> bool:
        """Finish a waiting execution. Only the first resume of a suspension wins."""
        with self._lock:
            execution = self._executions.get(execution_id)
            if execution is None or execution.status != ExecutionStatus.WAITING:
                return False
            execution.status = ExecutionStatus.SUCCESS
            execution.data = data
            return True

    def expire(self, execution_id: str) -> None:
        with self._lock:
            execution = self._executions[execution_id]
            if execution.status == ExecutionStatus.WAITING:
                execution.status = ExecutionStatus.EXPIRED


class LocalWebhookHost(WebhookHost):
    def __init__(
        self,
        session: requests.Session | None = None,
        binary_store: FileBinaryStore | None = None,
        inline_binary_limit: int = DEFAULT_INLINE_BINARY_LIMIT,
        timeout: int = DEFAULT_HTTP_TIMEOUT,
    ):
        self.session = session or requests.Session()
        self.binary_store = binary_store
        self.inline_binary_limit = inline_binary_limit
        self.timeout = timeout

    def http_request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        response = self.session.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    def prepare_binary_data(self, content: bytes, filename: str, mime_type: str | None) -> BinaryData:
        mime_type = mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        binary = BinaryData(file_name=filename, mime_type=mime_type, file_size=len(content))

        if mime_type.startswith("image/"):
            try:
                with Image.open(io.BytesIO(content)) as image:
                    binary.width, binary.height = image.size
                    logger.info("Image size: %s, mode: %s", image.size, image.mode)
            except OSError:
                logger.debug("Could not read image dimensions of %s", filename)

        if self.binary_store is not None and len(content) > self.inline_binary_limit:
            binary.id = self.binary_store.put(content)
        else:
            binary.data = content

        return binary


class LocalExecutionHost(LocalWebhookHost, ExecutionHost):
    """Runs one workflow execution in this process against a shared ExecutionStore."""

    def __init__(
        self,
        items: list[WorkflowItem],
        parameters: dict[str, Any],
        credentials: Credentials,
        store: ExecutionStore | None = None,
        continue_on_fail: bool = False,
        public_url: str = DEFAULT_PUBLIC_URL,
        api_base_url: str = DEFAULT_API_BASE_URL,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.items = items
        self.parameters = parameters
        self.credentials = credentials
        self.store = store or ExecutionStore()
        self.public_url = public_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self._continue_on_fail = continue_on_fail
        self.execution_id = self.store.create().id

    def get_input_data(self) -> list[WorkflowItem]:
        return self.items

    def get_node_parameter(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        if name in self.parameters:
            return self.parameters[name]
        if default is _MISSING:
            raise OperationError(f'Missing required parameter "{name}"', context={"item_index": item_index})
        return default

    def continue_on_fail(self) -> bool:
        return self._continue_on_fail

    def put_execution_to_wait(self, wait_till: datetime) -> None:
        self.store.wait(self.execution_id, wait_till)
        logger.info("Execution %s waiting until %s", self.execution_id, wait_till.isoformat())

    def get_resume_url(self) -> str:
        execution = self.store.get(self.execution_id)
        if execution is None or execution.status != ExecutionStatus.WAITING:
            raise RuntimeError("The resume URL is only available after the execution was put to wait")
        return f"{self.public_url}/webhook/{self.execution_id}"

    def http_request_with_authentication(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self.credentials.api_key}"
        return self.http_request(method, url, headers=headers, **kwargs)

    def assert_binary_data(self, item_index: int, property_name: str) -> BinaryData:
        binary = (self.items[item_index].binary or {}).get(property_name)
        if binary is None:
            raise OperationError(
                f'This operation expects the input item to contain a binary field named "{property_name}"',
                context={"item_index": item_index},
            )
        return binary

    def get_binary_data_buffer(self, item_index: int, property_name: str) -> bytes:
        binary = self.assert_binary_data(item_index, property_name)
        if binary.data is None and binary.id:
            return self._require_store().read(binary.id)
        return binary.data or b""

    def get_binary_stream(self, binary_id: str, chunk_size: int) -> Iterator[bytes]:
        return self._require_store().stream(binary_id, chunk_size)

    def _require_store(self) -> FileBinaryStore:
        if self.binary_store is None:
            raise RuntimeError("No binary store configured for externally stored binaries")
        return self.binary_store
