from datetime import datetime, timedelta, timezone
from typing import Any

from deapi_bridge.formdata import generate_formdata_body, new_boundary
from deapi_bridge.logger import get_logger
from deapi_bridge.models import JobRequest
from deapi_bridge.transport import api_request

logger = get_logger(__name__)


def wait_for_webhook(host, wait_timeout: int) -> str:
    """Put the execution to wait and return the URL that resumes it.

    The resume URL only exists once the wait is registered, so the order of
    the two host calls matters.
    """
    wait_till = datetime.now(timezone.utc) + timedelta(seconds=wait_timeout)
    host.put_execution_to_wait(wait_till)
    return host.get_resume_url()


def submit_job(host, request: JobRequest) -> Any:
    if request.multipart:
        boundary = new_boundary()
        body = generate_formdata_body(boundary, request.form_fields())
        response = api_request(
            host,
            "POST",
            request.endpoint,
            body=body,
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )
    else:
        response = api_request(host, "POST", request.endpoint, json=request.json_body())

    logger.info("Submitted %s request to %s", type(request).__name__, request.endpoint)
    return response
