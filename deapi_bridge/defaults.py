import random

from pydantic import BaseModel, ConfigDict

MAX_SEED = 2**32 - 1

Size = tuple[int, int]


class ImageModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: int
    max_steps: int
    sizes: dict[str, Size]

    def resolve_size(self, ratio: str, size: str | None = None) -> Size:
        return _resolve_size(self.sizes, ratio, size)

    def resolve_steps(self, steps: int | None = None) -> int:
        if steps is None:
            return self.steps
        if not 1 <= steps <= self.max_steps:
            raise ValueError(f"Steps must be between 1 and {self.max_steps}, got {steps}.")
        return steps


class VideoModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    fps: int
    steps: int
    guidance: float
    frames: int
    min_frames: int
    max_frames: int
    sizes: dict[str, Size]

    def resolve_size(self, ratio: str, size: str | None = None) -> Size:
        return _resolve_size(self.sizes, ratio, size)

    def resolve_frames(self, frames: int | None = None) -> int:
        if frames is None:
            return self.frames
        if not self.min_frames <= frames <= self.max_frames:
            raise ValueError(
                f"Frames must be between {self.min_frames} and {self.max_frames}, got {frames}."
            )
        return frames


IMAGE_MODELS: dict[str, ImageModel] = {
    "ZImageTurbo_INT8": ImageModel(
        steps=8,
        max_steps=50,
        sizes={"1:1": (768, 768), "16:9": (2048, 1152), "9:16": (1152, 2048)},
    ),
    "Flux1schnell": ImageModel(
        steps=4,
        max_steps=10,
        sizes={"1:1": (768, 768), "16:9": (1280, 720), "9:16": (720, 1280)},
    ),
}

VIDEO_MODELS: dict[str, VideoModel] = {
    "Ltx2_19B_Dist_FP8": VideoModel(
        fps=24,
        steps=8,
        guidance=1.0,
        frames=120,
        min_frames=49,
        max_frames=241,
        sizes={"square": (768, 768), "landscape": (1024, 576), "portrait": (720, 900)},
    ),
    "Ltxv_13B_0_9_8_Distilled_FP8": VideoModel(
        fps=30,
        steps=1,
        guidance=0.0,
        frames=120,
        min_frames=30,
        max_frames=120,
        sizes={"square": (512, 512), "landscape": (512, 288), "portrait": (288, 512)},
    ),
}


def image_model(name: str) -> ImageModel:
    if name not in IMAGE_MODELS:
        raise ValueError(f'Unsupported image model "{name}".')
    return IMAGE_MODELS[name]


def video_model(name: str) -> VideoModel:
    if name not in VIDEO_MODELS:
        raise ValueError(f'Unsupported video model "{name}".')
    return VIDEO_MODELS[name]


def parse_size(size_str: str) -> Size:
    """Parse a size string in the format 'widthxheight'."""
    try:
        width, height = map(int, size_str.lower().split("x"))
    except ValueError:
        raise ValueError(f'Invalid resolution format: "{size_str}". Expected "WIDTHxHEIGHT".')
    if width <= 0 or height <= 0:
        raise ValueError(f'Invalid resolution: "{size_str}". Width and height must be positive.')
    return width, height


def _resolve_size(sizes: dict[str, Size], ratio: str, size: str | None) -> Size:
    if size:
        return parse_size(size)
    if ratio not in sizes:
        raise ValueError(f'Unsupported ratio "{ratio}". Expected one of: {", ".join(sizes)}.')
    return sizes[ratio]


def resolve_seed(seed: int | None = None) -> int:
    # -1 asks for a fresh seed on every submission
    if seed is None or seed == -1:
        return random.randint(0, MAX_SEED)
    return seed
