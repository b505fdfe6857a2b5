from enum import Enum
from typing import Callable

from deapi_bridge import actions
from deapi_bridge.errors import OperationError, UnsupportedOperationError
from deapi_bridge.logger import get_logger
from deapi_bridge.models import WorkflowItem

logger = get_logger(__name__)


class DeapiOperation(Enum):
    IMAGE_GENERATE = ("image", "generate")
    IMAGE_REMOVE_BACKGROUND = ("image", "removeBackground")
    VIDEO_GENERATE = ("video", "generate")
    VIDEO_TRANSCRIBE = ("video", "transcribe")
    AUDIO_TRANSCRIBE = ("audio", "transcribe")
    PROMPT_BOOST_IMAGE = ("prompt", "boostImage")
    PROMPT_BOOST_VIDEO = ("prompt", "boostVideo")

    @property
    def resource(self) -> str:
        return self.value[0]

    @property
    def operation(self) -> str:
        return self.value[1]

    @classmethod
    def find(cls, resource: str, operation: str) -> "DeapiOperation | None":
        try:
            return cls((resource, operation))
        except ValueError:
            return None


Handler = Callable[..., list[WorkflowItem]]

HANDLERS: dict[DeapiOperation, Handler] = {
    DeapiOperation.IMAGE_GENERATE: actions.generate_image,
    DeapiOperation.IMAGE_REMOVE_BACKGROUND: actions.remove_background,
    DeapiOperation.VIDEO_GENERATE: actions.generate_video,
    DeapiOperation.VIDEO_TRANSCRIBE: actions.transcribe_video,
    DeapiOperation.AUDIO_TRANSCRIBE: actions.transcribe_audio,
    DeapiOperation.PROMPT_BOOST_IMAGE: actions.boost_image_prompt,
    DeapiOperation.PROMPT_BOOST_VIDEO: actions.boost_video_prompt,
}

# One suspended execution is resumed by exactly one callback
WAITING_OPERATIONS = frozenset(
    {
        DeapiOperation.IMAGE_GENERATE,
        DeapiOperation.IMAGE_REMOVE_BACKGROUND,
        DeapiOperation.VIDEO_GENERATE,
        DeapiOperation.VIDEO_TRANSCRIBE,
        DeapiOperation.AUDIO_TRANSCRIBE,
    }
)

_missing = [op.name for op in DeapiOperation if op not in HANDLERS]
if _missing:
    raise RuntimeError(f"No handler registered for: {', '.join(_missing)}")


def _error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


def route(host) -> list[WorkflowItem]:
    """Run the handler selected by the host's resource and operation parameters.

    Suspend/resume operations only handle the first input item. Item failures
    become error items when the host continues on fail, otherwise they are
    raised with the failing item index in their context.
    """
    resource = host.get_node_parameter("resource", 0)
    operation = host.get_node_parameter("operation", 0)

    selected = DeapiOperation.find(resource, operation)
    if selected is None:
        raise UnsupportedOperationError(f'The operation "{operation}" is not supported!')

    handler = HANDLERS[selected]
    items = host.get_input_data()
    if selected in WAITING_OPERATIONS:
        items = items[:1]

    logger.info("Running %s/%s on %d item(s)", resource, operation, len(items))

    results: list[WorkflowItem] = []
    for i in range(len(items)):
        try:
            results.extend(handler(host, i))
        except Exception as error:
            if host.continue_on_fail():
                logger.warning("Item %d failed: %s", i, error)
                results.append(WorkflowItem(json_data={"error": _error_message(error)}, paired_item=i))
                continue
            context = getattr(error, "context", None)
            if isinstance(context, dict):
                context["item_index"] = i
                raise
            raise OperationError(
                _error_message(error),
                context={"item_index": i},
                description=f"{resource}/{operation} failed on item {i}",
            ) from error

    return results
