from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class JobEvent(str, Enum):
    PROCESSING = "job.processing"
    COMPLETED = "job.completed"
    FAILED = "job.failed"


class FileAttachment(BaseModel):
    filename: str = Field(min_length=1)
    content_type: str = "application/octet-stream"
    content: bytes


class BinaryData(BaseModel):
    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    file_name: str | None = None
    mime_type: str | None = None
    id: str | None = None  # set when the content lives in external storage
    data: bytes | None = None
    file_size: int | None = None
    width: int | None = None
    height: int | None = None


class WorkflowItem(BaseModel):
    json_data: dict[str, Any] = Field(default_factory=dict)
    binary: dict[str, BinaryData] | None = None
    paired_item: int | None = None


class WebhookEnvelope(BaseModel):
    event: str
    data: dict[str, Any] | None = Field(default_factory=dict)

    @property
    def result_url(self) -> str | None:
        if not self.data:
            return None
        return self.data.get("result_url") or None


class ExecuteRequest(BaseModel):
    """Body of a local workflow run: which operation to run on which items."""

    resource: str
    operation: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    items: list[WorkflowItem] = Field(default_factory=lambda: [WorkflowItem()])
    continue_on_fail: bool = False


class JobRequest(BaseModel):
    """A request to the remote API. Field declaration order is the wire order."""

    endpoint: ClassVar[str]
    multipart: ClassVar[bool] = False

    def form_fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).model_fields}

    def json_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TextToImageRequest(JobRequest):
    endpoint: ClassVar[str] = "/txt2img"

    prompt: str
    negative_prompt: str | None = None
    model: str
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    steps: int = Field(ge=0)
    seed: int = Field(ge=0)
    webhook_url: str


class TextToVideoRequest(JobRequest):
    endpoint: ClassVar[str] = "/txt2video"

    prompt: str
    model: str
    frames: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    negative_prompt: str | None = None
    seed: int = Field(ge=0)
    steps: int = Field(ge=0)
    guidance: float = Field(ge=0)
    fps: int = Field(ge=0)
    webhook_url: str


class ImageToVideoRequest(JobRequest):
    endpoint: ClassVar[str] = "/img2video"
    multipart: ClassVar[bool] = True

    prompt: str
    model: str
    first_frame_image: FileAttachment
    frames: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    last_frame_image: FileAttachment | None = None
    negative_prompt: str | None = None
    seed: int = Field(ge=0)
    steps: int = Field(ge=0)
    guidance: float = Field(ge=0)
    fps: int = Field(ge=0)
    webhook_url: str


class AudioFileToTextRequest(JobRequest):
    endpoint: ClassVar[str] = "/audiofile2txt"
    multipart: ClassVar[bool] = True

    audio: FileAttachment
    include_ts: bool
    model: str
    webhook_url: str


class VideoUrlToTextRequest(JobRequest):
    endpoint: ClassVar[str] = "/vid2txt"

    video_url: str
    include_ts: bool
    model: str
    webhook_url: str


class VideoFileToTextRequest(JobRequest):
    endpoint: ClassVar[str] = "/videofile2txt"
    multipart: ClassVar[bool] = True

    video: FileAttachment
    include_ts: bool
    model: str
    webhook_url: str


class RemoveBackgroundRequest(JobRequest):
    endpoint: ClassVar[str] = "/img-rmbg"
    multipart: ClassVar[bool] = True

    image: FileAttachment
    model: str
    webhook_url: str


class ImagePromptBoosterRequest(JobRequest):
    endpoint: ClassVar[str] = "/prompt/image"

    prompt: str
    negative_prompt: str | None = None


class VideoPromptBoosterRequest(JobRequest):
    endpoint: ClassVar[str] = "/prompt/video"
    multipart: ClassVar[bool] = True

    prompt: str
    negative_prompt: str | None = None
    image: FileAttachment | None = None
