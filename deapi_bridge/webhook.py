import json
from typing import Iterable, Mapping

from pydantic import BaseModel, ValidationError

from deapi_bridge.binary_data import download_and_prepare_binary_data
from deapi_bridge.logger import get_logger
from deapi_bridge.models import JobEvent, WebhookEnvelope, WorkflowItem
from deapi_bridge.signature import verify_webhook_signature

logger = get_logger(__name__)

SIGNATURE_HEADERS = ("x-signature", "x-deapi-signature")
TIMESTAMP_HEADERS = ("x-timestamp", "x-deapi-timestamp")

TRIGGER_EVENTS = {
    JobEvent.PROCESSING.value: "jobProcessing",
    JobEvent.COMPLETED.value: "jobCompleted",
    JobEvent.FAILED.value: "jobFailed",
}


class WebhookResponse(BaseModel):
    status_code: int = 200
    body: str = "OK"
    workflow_data: list[WorkflowItem] | None = None

    @property
    def resumed(self) -> bool:
        return self.workflow_data is not None


def get_header(headers: Mapping[str, str], names: Iterable[str]) -> str | None:
    """Case-insensitive lookup of the first header present under any of ``names``."""
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return value
    return None


def _authenticate(secret: str | None, headers: Mapping[str, str], raw_body: bytes) -> WebhookResponse | None:
    signature = get_header(headers, SIGNATURE_HEADERS)
    timestamp = get_header(headers, TIMESTAMP_HEADERS)
    if not verify_webhook_signature(secret, signature, timestamp, raw_body):
        return WebhookResponse(status_code=401, body="Invalid signature")
    return None


def _parse_envelope(raw_body: bytes) -> tuple[dict, WebhookEnvelope] | None:
    try:
        payload = json.loads(raw_body)
        if not isinstance(payload, dict):
            return None
        return payload, WebhookEnvelope.model_validate(payload)
    except (ValueError, ValidationError):
        return None


def handle_resume_webhook(host, secret: str | None, headers: Mapping[str, str], raw_body: bytes) -> WebhookResponse:
    """Turn a signed job callback into the output of the suspended execution.

    ``job.completed`` with a ``result_url`` downloads the artifact into the
    ``data`` binary property. Completed callbacks without one and failed
    callbacks pass the whole envelope on as JSON. Every other event is
    acknowledged and leaves the execution waiting.
    """
    rejected = _authenticate(secret, headers, raw_body)
    if rejected:
        return rejected

    parsed = _parse_envelope(raw_body)
    if parsed is None:
        logger.warning("Rejected webhook: payload is not a job event")
        return WebhookResponse(status_code=400, body="Invalid payload")
    payload, envelope = parsed

    logger.info("Received %s webhook", envelope.event)

    if envelope.event == JobEvent.COMPLETED:
        if envelope.result_url:
            artifact = download_and_prepare_binary_data(host, envelope.result_url)
            return WebhookResponse(workflow_data=[WorkflowItem(json_data=envelope.data, binary={"data": artifact})])
        return WebhookResponse(workflow_data=[WorkflowItem(json_data=payload)])

    if envelope.event == JobEvent.FAILED:
        return WebhookResponse(workflow_data=[WorkflowItem(json_data=payload)])

    # job.processing and unknown events keep the execution waiting
    return WebhookResponse()


def handle_trigger_webhook(
    host,
    secret: str | None,
    headers: Mapping[str, str],
    raw_body: bytes,
    events: Iterable[str],
    download_binary: bool = True,
) -> WebhookResponse:
    """Start a workflow from a signed job callback when its event is selected."""
    rejected = _authenticate(secret, headers, raw_body)
    if rejected:
        return rejected

    parsed = _parse_envelope(raw_body)
    if parsed is None:
        logger.warning("Rejected trigger webhook: payload is not a job event")
        return WebhookResponse(status_code=400, body="Invalid payload")
    payload, envelope = parsed

    trigger_event = TRIGGER_EVENTS.get(envelope.event)
    if trigger_event is None or trigger_event not in set(events):
        logger.info("Ignoring %s trigger webhook", envelope.event)
        return WebhookResponse()

    logger.info("Triggering workflow for %s", envelope.event)

    if envelope.event == JobEvent.COMPLETED and download_binary and envelope.result_url:
        artifact = download_and_prepare_binary_data(host, envelope.result_url)
        return WebhookResponse(workflow_data=[WorkflowItem(json_data={}, binary={"data": artifact})])

    return WebhookResponse(workflow_data=[WorkflowItem(json_data=payload)])
