from pydantic import BaseModel, Field

from deapi_bridge.binary_data import get_binary_data_file
from deapi_bridge.defaults import MAX_SEED, image_model, resolve_seed, video_model
from deapi_bridge.jobs import submit_job, wait_for_webhook
from deapi_bridge.logger import get_logger
from deapi_bridge.models import (
    AudioFileToTextRequest,
    ImagePromptBoosterRequest,
    ImageToVideoRequest,
    RemoveBackgroundRequest,
    TextToImageRequest,
    TextToVideoRequest,
    VideoFileToTextRequest,
    VideoPromptBoosterRequest,
    VideoUrlToTextRequest,
    WorkflowItem,
)

logger = get_logger(__name__)

DEFAULT_IMAGE_MODEL = "ZImageTurbo_INT8"
DEFAULT_VIDEO_MODEL = "Ltx2_19B_Dist_FP8"
REMOVE_BACKGROUND_MODEL = "Ben2"
TRANSCRIPTION_MODEL = "WhisperLargeV3"


class ImageGenerateOptions(BaseModel):
    size: str | None = None
    steps: int | None = None
    seed: int = Field(default=-1, ge=-1, le=MAX_SEED)
    wait_timeout: int = Field(default=60, ge=30, le=240)


class RemoveBackgroundOptions(BaseModel):
    wait_timeout: int = Field(default=60, ge=30, le=240)


class VideoGenerateOptions(BaseModel):
    last_frame: str | None = None
    frames: int | None = None
    negative_prompt: str | None = None
    size: str | None = None
    seed: int = Field(default=-1, ge=-1, le=MAX_SEED)
    wait_timeout: int = Field(default=60, ge=30, le=240)


class TranscribeOptions(BaseModel):
    wait_timeout: int = Field(default=120, ge=30, le=600)


class PromptBoostOptions(BaseModel):
    negative_prompt: str | None = None
    binary_property_name: str | None = None


def _passthrough(host, i: int) -> list[WorkflowItem]:
    # The real result arrives later through the resume webhook
    return [host.get_input_data()[i]]


def generate_image(host, i: int) -> list[WorkflowItem]:
    prompt = host.get_node_parameter("prompt", i)
    negative_prompt = host.get_node_parameter("negative_prompt", i, "")
    model_name = host.get_node_parameter("model", i, DEFAULT_IMAGE_MODEL)
    ratio = host.get_node_parameter("ratio", i, "1:1")
    options = ImageGenerateOptions.model_validate(host.get_node_parameter("options", i, {}))

    model = image_model(model_name)
    width, height = model.resolve_size(ratio, options.size)
    steps = model.resolve_steps(options.steps)
    seed = resolve_seed(options.seed)
    logger.info(
        "Using model %s for item %d with size %dx%d, %d steps and seed %d",
        model_name, i, width, height, steps, seed,
    )

    webhook_url = wait_for_webhook(host, options.wait_timeout)

    request = TextToImageRequest(
        prompt=prompt,
        negative_prompt=negative_prompt or None,
        model=model_name,
        width=width,
        height=height,
        steps=steps,
        seed=seed,
        webhook_url=webhook_url,
    )
    submit_job(host, request)

    return _passthrough(host, i)


def remove_background(host, i: int) -> list[WorkflowItem]:
    binary_property_name = host.get_node_parameter("binary_property_name", i, "data")
    options = RemoveBackgroundOptions.model_validate(host.get_node_parameter("options", i, {}))

    webhook_url = wait_for_webhook(host, options.wait_timeout)

    request = RemoveBackgroundRequest(
        image=get_binary_data_file(host, i, binary_property_name, default_filename="image"),
        model=REMOVE_BACKGROUND_MODEL,
        webhook_url=webhook_url,
    )
    submit_job(host, request)

    return _passthrough(host, i)


def generate_video(host, i: int) -> list[WorkflowItem]:
    source = host.get_node_parameter("source", i, "text")
    prompt = host.get_node_parameter("prompt", i)
    model_name = host.get_node_parameter("model", i, DEFAULT_VIDEO_MODEL)
    ratio = host.get_node_parameter("ratio", i, "square")
    options = VideoGenerateOptions.model_validate(host.get_node_parameter("options", i, {}))

    if source not in ("text", "image"):
        raise ValueError(f'Unsupported video source "{source}". Expected "text" or "image".')

    model = video_model(model_name)
    width, height = model.resolve_size(ratio, options.size)
    frames = model.resolve_frames(options.frames)
    seed = resolve_seed(options.seed)

    webhook_url = wait_for_webhook(host, options.wait_timeout)

    if source == "text":
        request = TextToVideoRequest(
            prompt=prompt,
            model=model_name,
            frames=frames,
            width=width,
            height=height,
            negative_prompt=options.negative_prompt,
            seed=seed,
            steps=model.steps,
            guidance=model.guidance,
            fps=model.fps,
            webhook_url=webhook_url,
        )
    else:
        first_frame = host.get_node_parameter("first_frame", i, "data")
        last_frame = None
        if options.last_frame:
            last_frame = get_binary_data_file(host, i, options.last_frame)

        request = ImageToVideoRequest(
            prompt=prompt,
            model=model_name,
            first_frame_image=get_binary_data_file(host, i, first_frame),
            frames=frames,
            width=width,
            height=height,
            last_frame_image=last_frame,
            negative_prompt=options.negative_prompt,
            seed=seed,
            steps=model.steps,
            guidance=model.guidance,
            fps=model.fps,
            webhook_url=webhook_url,
        )

    submit_job(host, request)

    return _passthrough(host, i)


def transcribe_video(host, i: int) -> list[WorkflowItem]:
    source = host.get_node_parameter("source", i, "url")
    include_timestamps = host.get_node_parameter("include_timestamps", i, True)
    options = TranscribeOptions.model_validate(host.get_node_parameter("options", i, {}))

    if source not in ("url", "binary"):
        raise ValueError(f'Unsupported video source "{source}". Expected "url" or "binary".')

    webhook_url = wait_for_webhook(host, options.wait_timeout)

    if source == "url":
        request = VideoUrlToTextRequest(
            video_url=host.get_node_parameter("video_url", i),
            include_ts=include_timestamps,
            model=TRANSCRIPTION_MODEL,
            webhook_url=webhook_url,
        )
    else:
        binary_property_name = host.get_node_parameter("binary_property_name", i, "data")
        request = VideoFileToTextRequest(
            video=get_binary_data_file(host, i, binary_property_name, default_filename="video"),
            include_ts=include_timestamps,
            model=TRANSCRIPTION_MODEL,
            webhook_url=webhook_url,
        )

    submit_job(host, request)

    return _passthrough(host, i)


def transcribe_audio(host, i: int) -> list[WorkflowItem]:
    binary_property_name = host.get_node_parameter("binary_property_name", i, "data")
    include_timestamps = host.get_node_parameter("include_timestamps", i, True)
    options = TranscribeOptions.model_validate(host.get_node_parameter("options", i, {}))

    webhook_url = wait_for_webhook(host, options.wait_timeout)

    request = AudioFileToTextRequest(
        audio=get_binary_data_file(host, i, binary_property_name, default_filename="audio"),
        include_ts=include_timestamps,
        model=TRANSCRIPTION_MODEL,
        webhook_url=webhook_url,
    )
    submit_job(host, request)

    return _passthrough(host, i)


def _booster_item(response, i: int) -> WorkflowItem:
    json_data = response if isinstance(response, dict) else {"data": response}
    return WorkflowItem(json_data=json_data, paired_item=i)


def boost_image_prompt(host, i: int) -> list[WorkflowItem]:
    # Prompts shorter than 3 characters are rejected by the API itself
    prompt = host.get_node_parameter("prompt", i)
    options = PromptBoostOptions.model_validate(host.get_node_parameter("options", i, {}))

    request = ImagePromptBoosterRequest(prompt=prompt, negative_prompt=options.negative_prompt)
    return [_booster_item(submit_job(host, request), i)]


def boost_video_prompt(host, i: int) -> list[WorkflowItem]:
    prompt = host.get_node_parameter("prompt", i)
    options = PromptBoostOptions.model_validate(host.get_node_parameter("options", i, {}))

    image = None
    if options.binary_property_name:
        image = get_binary_data_file(host, i, options.binary_property_name)

    request = VideoPromptBoosterRequest(
        prompt=prompt,
        negative_prompt=options.negative_prompt,
        image=image,
    )
    return [_booster_item(submit_job(host, request), i)]
