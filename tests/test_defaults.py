"""Tests for model default tables and parameter resolution."""

from unittest.mock import patch

import pytest

from deapi_bridge.defaults import (
    MAX_SEED,
    image_model,
    parse_size,
    resolve_seed,
    video_model,
)


class TestImageModels:
    @pytest.mark.parametrize(
        "model, ratio, size",
        [
            ("ZImageTurbo_INT8", "1:1", (768, 768)),
            ("ZImageTurbo_INT8", "16:9", (2048, 1152)),
            ("ZImageTurbo_INT8", "9:16", (1152, 2048)),
            ("Flux1schnell", "16:9", (1280, 720)),
            ("Flux1schnell", "9:16", (720, 1280)),
        ],
    )
    def test_ratio_table(self, model, ratio, size):
        assert image_model(model).resolve_size(ratio) == size

    def test_explicit_size_wins(self):
        assert image_model("Flux1schnell").resolve_size("16:9", "640x480") == (640, 480)

    def test_default_steps(self):
        assert image_model("ZImageTurbo_INT8").resolve_steps() == 8
        assert image_model("Flux1schnell").resolve_steps() == 4

    @pytest.mark.parametrize("steps", [0, 11])
    def test_steps_out_of_range(self, steps):
        with pytest.raises(ValueError, match="Steps"):
            image_model("Flux1schnell").resolve_steps(steps)

    def test_unknown_ratio(self):
        with pytest.raises(ValueError, match="Unsupported ratio"):
            image_model("ZImageTurbo_INT8").resolve_size("4:3")

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unsupported image model"):
            image_model("NoSuchModel")


class TestVideoModels:
    def test_ltx2_defaults(self):
        model = video_model("Ltx2_19B_Dist_FP8")

        assert (model.fps, model.steps, model.guidance, model.frames) == (24, 8, 1.0, 120)
        assert model.resolve_size("portrait") == (720, 900)

    def test_ltxv_defaults(self):
        model = video_model("Ltxv_13B_0_9_8_Distilled_FP8")

        assert (model.fps, model.steps, model.guidance) == (30, 1, 0.0)
        assert model.resolve_size("landscape") == (512, 288)

    def test_frames_range(self):
        model = video_model("Ltx2_19B_Dist_FP8")

        assert model.resolve_frames(49) == 49
        assert model.resolve_frames(241) == 241
        with pytest.raises(ValueError, match="Frames"):
            model.resolve_frames(48)

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unsupported video model"):
            video_model("NoSuchModel")


class TestParseSize:
    def test_upper_case_separator(self):
        assert parse_size("1024X576") == (1024, 576)

    @pytest.mark.parametrize("size", ["1024", "ax576", "1024x576x2", "0x576", "-5x5"])
    def test_malformed(self, size):
        with pytest.raises(ValueError):
            parse_size(size)


class TestResolveSeed:
    @pytest.mark.parametrize("seed", [-1, None])
    def test_random_seed(self, seed):
        with patch("deapi_bridge.defaults.random.randint", return_value=1234) as randint:
            assert resolve_seed(seed) == 1234

        randint.assert_called_once_with(0, MAX_SEED)

    def test_random_seed_is_drawn_per_call(self):
        with patch("deapi_bridge.defaults.random.randint", side_effect=[1, 2]):
            assert [resolve_seed(-1), resolve_seed(-1)] == [1, 2]

    def test_explicit_seed(self):
        assert resolve_seed(42) == 42
        assert resolve_seed(0) == 0
