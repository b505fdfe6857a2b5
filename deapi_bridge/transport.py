from typing import Any

import requests

from deapi_bridge.logger import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Upgrade to Premium at https://deapi.ai/billing to remove daily caps."


def api_request(
    host,
    method: str,
    endpoint: str,
    json: dict | None = None,
    body: bytes | None = None,
    params: dict | None = None,
    headers: dict | None = None,
) -> Any:
    url = f"{host.api_base_url}{endpoint}"

    try:
        response = host.http_request_with_authentication(
            method, url, json=json, data=body, params=params, headers=headers
        )
    except requests.HTTPError as error:
        if error.response is not None and error.response.status_code == 429:
            # Same exception object, only the message changes
            error.args = (RATE_LIMIT_MESSAGE,)
        logger.warning("%s %s failed: %s", method, url, error)
        raise

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
