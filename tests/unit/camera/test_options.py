"""Tests for the capture option models."""

import pytest

from rpi_cam.camera.options import (
    CaptureOptions,
    StillOptions,
    VideoOptions,
    Zoom,
    ZOOM_REGIONS,
    zoom_region,
)
from rpi_cam.core.errors import OptionsError


class TestZoom:

    def test_table_covers_every_level(self):
        assert set(ZOOM_REGIONS) == set(Zoom)

    def test_unset_defaults_to_1x(self):
        assert zoom_region(None) == (0, 0, 1, 1)

    def test_lookup_by_string(self):
        assert zoom_region("8x") == (0.437, 0.437, 0.125, 0.125)

    def test_unknown_level(self):
        with pytest.raises(OptionsError):
            zoom_region("11x")

    def test_options_coerce_zoom(self):
        assert StillOptions(zoom="4x").zoom is Zoom.X4

    def test_options_reject_unknown_zoom(self):
        with pytest.raises(OptionsError, match="zoom"):
            VideoOptions(zoom="0.5x")


class TestValidation:

    @pytest.mark.parametrize(
        "field, value",
        [
            ("rotation", 45),
            ("iso", 123),
            ("awb", "moonlight"),
            ("exposure", "dramatic"),
            ("effect", "glitter"),
            ("autofocus_range", "far"),
        ],
    )
    def test_values_outside_choices(self, field, value):
        with pytest.raises(OptionsError, match=field):
            CaptureOptions(**{field: value})

    def test_video_choices(self):
        with pytest.raises(OptionsError):
            VideoOptions(codec="vp9")
        with pytest.raises(OptionsError):
            VideoOptions(codec_profile="baseline")

    def test_unset_sentinels_skip_validation(self):
        options = CaptureOptions(rotation=-1, iso=-1, awb="")
        assert options.rotation == -1

    def test_options_error_is_value_error(self):
        with pytest.raises(ValueError):
            CaptureOptions(rotation=1)


class TestMappings:

    def test_from_dict(self):
        options = VideoOptions.from_dict({"fps": 25, "codec": "mjpeg", "zoom": "2x"})
        assert options.fps == 25
        assert options.codec == "mjpeg"
        assert options.zoom is Zoom.X2

    def test_from_empty(self):
        assert StillOptions.from_dict(None) == StillOptions()
        assert StillOptions.from_dict({}) == StillOptions()

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(OptionsError, match="bogus"):
            StillOptions.from_dict({"quality": 90, "bogus": 1})

    def test_still_fields_not_accepted_by_video(self):
        with pytest.raises(OptionsError, match="quality"):
            VideoOptions.from_dict({"quality": 90})

    def test_to_dict_exports_set_fields(self):
        options = StillOptions(zoom="3x", quality=80, flip_horizontal=False)
        assert options.to_dict() == {"zoom": "3x", "quality": 80, "flip_horizontal": False}

    def test_to_dict_round_trip(self):
        original = VideoOptions(fps=30, codec="h264", denoise=True)
        assert VideoOptions.from_dict(original.to_dict()) == original


class TestValueKinds:

    @pytest.mark.parametrize(
        "field, value",
        [
            ("brightness", "0.5"),
            ("quality", "90"),
            ("timeout", True),
            ("flip_horizontal", "false"),
            ("burst", 1),
            ("awb", 3),
            ("format", ["jpg"]),
        ],
    )
    def test_wrong_kind_rejected(self, field, value):
        with pytest.raises(OptionsError, match=field):
            StillOptions.from_dict({field: value})

    def test_video_fields_checked(self):
        with pytest.raises(OptionsError, match="fps"):
            VideoOptions.from_dict({"fps": "30"})
        with pytest.raises(OptionsError, match="circular_mode"):
            VideoOptions.from_dict({"circular_mode": "yes"})

    def test_numbers_accept_int_and_float(self):
        options = StillOptions.from_dict({"brightness": 1, "contrast": 0.5, "quality": 90.0})
        assert options.brightness == 1
        assert options.contrast == 0.5

    def test_enum_values_are_text(self):
        assert CaptureOptions(zoom=Zoom.X5).zoom is Zoom.X5
