"""
Unit tests for the preprocessing module: behavioral tests only.

Covers: error handling, algorithm correctness, side-effect validation,
conditional behavior, and end-to-end preset behavior.
"""

from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from preprocessing import (
    ConfigError,
    ImageIOError,
    PipelineConfig,
    PreprocessResult,
    load_image,
    run_pipeline,
    run_preset,
    to_grayscale,
    resize_to_width,
    write_image,
    build_base_pipeline,
    build_background_pipeline,
    build_enhance_pipeline,
    build_preset_pipeline,
    GrayscaleStep,
    ResizeStep,
    CLAHEStep,
    Pipeline,
)
from preprocessing.arguments import parse_clahe_args
from preprocessing.paths import resolve_output_paths


class TestToGrayscale:
    """Tests for the to_grayscale function."""

    def test_pure_function_no_mutation(self):
        """Input should not be modified."""
        rgb = np.full((10, 10, 3), 128, dtype=np.uint8)
        original_data = rgb.copy()
        _ = to_grayscale(rgb)
        assert np.array_equal(rgb, original_data)

    def test_white_image_produces_white_gray(self):
        white = np.full((10, 10, 3), 255, dtype=np.uint8)
        assert np.all(to_grayscale(white) == 255)

    def test_rgba_alpha_dropped(self):
        rgba = np.zeros((10, 10, 4), dtype=np.uint8)
        rgba[..., 3] = 255
        assert np.all(to_grayscale(rgba) == 0)

    def test_invalid_type_raises(self):
        with pytest.raises(TypeError, match="Expected numpy.ndarray"):
            to_grayscale([[1, 2], [3, 4]])

    def test_empty_array_raises(self):
        with pytest.raises(ValueError):
            to_grayscale(np.array([]))

    def test_1d_array_raises(self):
        with pytest.raises(ValueError, match="2D or 3D"):
            to_grayscale(np.array([1, 2, 3]))

    def test_unsupported_channels_raises(self):
        with pytest.raises(ValueError, match="Unsupported number of channels"):
            to_grayscale(np.zeros((10, 10, 5), dtype=np.uint8))


class TestResizeToWidth:
    """Tests for the resize_to_width function."""

    def test_downscale_preserves_aspect_ratio(self):
        img = np.zeros((1000, 2000, 3), dtype=np.uint8)
        resized, scale = resize_to_width(img, 1000)
        assert resized.shape == (500, 1000, 3)
        assert scale == 2.0

    def test_upscale_preserves_aspect_ratio(self):
        img = np.zeros((100, 200), dtype=np.uint8)
        resized, scale = resize_to_width(img, 400)
        assert resized.shape == (200, 400)
        assert scale == 0.5

    def test_invalid_width_zero_raises(self):
        with pytest.raises(ValueError, match="positive"):
            resize_to_width(np.zeros((100, 200, 3)), 0)

    def test_invalid_width_type_raises(self):
        with pytest.raises(TypeError, match="target_width must be int"):
            resize_to_width(np.zeros((100, 200, 3)), 100.5)


class TestPipelineConfig:
    """Tests for PipelineConfig validation."""

    def test_defaults_are_valid(self):
        PipelineConfig().validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            PipelineConfig(target_width=0).validate()

    def test_small_width_accepted(self):
        PipelineConfig(target_width=8).validate()

    def test_too_large_width_raises(self):
        with pytest.raises(ConfigError, match="very large"):
            PipelineConfig(target_width=50000).validate()

    def test_unknown_preset_raises(self):
        with pytest.raises(ConfigError, match="Unknown preset"):
            PipelineConfig(preset="sepia").validate()

    def test_unknown_selection_mode_raises(self):
        with pytest.raises(ConfigError, match="Unknown selection mode"):
            PipelineConfig(select_mode="random").validate()

    def test_unsupported_format_raises(self):
        with pytest.raises(ConfigError, match="Unsupported output format"):
            PipelineConfig(output_format="gif").validate()

    def test_malformed_filter_argument_raises(self):
        with pytest.raises(ConfigError, match="local threshold"):
            PipelineConfig(hard_lat="25by25").validate()

    @pytest.mark.parametrize("field,value", [
        ("tile_size", -1),
        ("tophat_radius", 0),
        ("hard_blur_radius", 0),
        ("tess_psm", 14),
        ("tess_lang", "eng;rm -rf"),
        ("workers", 0),
    ])
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(ConfigError):
            PipelineConfig(**{field: value}).validate()

    def test_format_normalized(self):
        assert PipelineConfig(output_format="PNG").format == "png"


class TestPreprocessResult:
    def test_dimensions(self):
        result = PreprocessResult(
            original=np.zeros((200, 400, 3)),
            processed=np.zeros((100, 200)),
            scale_factor=2.0,
            config=PipelineConfig(target_width=200),
        )
        assert result.dimensions == (200, 100)


class TestHardStagePipelines:
    """Tests for the base/background/enhance pipelines used by hard mode."""

    def test_base_pipeline_order(self):
        config = PipelineConfig(target_width=1000, deskew=True)
        assert build_base_pipeline(config).describe() == [
            "grayscale",
            "resize(1000)",
            "deskew(40%)",
        ]

    def test_base_pipeline_grays_last_in_hard_mode_without_gray(self):
        config = PipelineConfig(grayscale=False)
        assert build_base_pipeline(config, hard=True).describe() == ["grayscale"]
        assert build_base_pipeline(config, hard=False).describe() == []

    def test_base_output_is_single_channel(self, rgb_page):
        result = build_base_pipeline(PipelineConfig(grayscale=False)).run(rgb_page)
        assert result.final.ndim == 2

    def test_background_pipeline_steps(self):
        assert build_background_pipeline(30).describe() == [
            "divide(blur=30)",
            "auto_level",
            "normalize",
        ]
        assert build_background_pipeline(40, normalize=False).describe() == [
            "divide(blur=40)",
            "auto_level",
        ]

    def test_enhance_pipeline_ends_with_sharpen(self, page):
        pipeline = build_enhance_pipeline(PipelineConfig())
        result = pipeline.run(page)
        assert pipeline.describe()[-1] == "sharpen(sigma=1)"
        assert result.final.shape == page.shape
        assert result.final.dtype == np.uint8


class TestPresetPipelines:
    """Tests for the single-pass presets."""

    def test_clahe_preset(self):
        steps = build_preset_pipeline(PipelineConfig(preset="clahe")).describe()
        assert steps == ["grayscale", "clahe(clip=3)", "unsharp(sigma=1.2)", "contrast_stretch"]

    def test_bgfix_preset(self):
        steps = build_preset_pipeline(PipelineConfig(preset="bgfix")).describe()
        assert steps == ["grayscale", "divide(blur=40)", "auto_level", "unsharp(sigma=1.2)"]

    def test_bw_preset_with_deskew_and_trim(self):
        config = PipelineConfig(preset="bw", deskew=True, trim=True)
        steps = build_preset_pipeline(config).describe()
        assert steps[-3:] == ["local_threshold(35x35)", "deskew(40%)", "trim"]

    def test_hard_has_no_single_pass_pipeline(self):
        with pytest.raises(ConfigError, match="single-pass"):
            build_preset_pipeline(PipelineConfig(preset="hard"))

    def test_bw_output_is_binary(self, page):
        result = run_pipeline(page, PipelineConfig(preset="bw"))
        assert set(np.unique(result.processed)) <= {0, 255}


class TestRunPipeline:
    """Tests for the run_pipeline function."""

    def test_default_preset_produces_grayscale_output(self, rgb_page):
        result = run_pipeline(rgb_page)
        assert result.processed.ndim == 2
        assert result.processed.dtype == np.uint8

    def test_pipeline_with_resize(self):
        img = np.random.randint(0, 256, (1000, 2000, 3), dtype=np.uint8)
        result = run_pipeline(img, PipelineConfig(target_width=1000))
        assert result.processed.shape == (500, 1000)
        assert result.scale_factor == 2.0

    def test_pipeline_preserves_original(self):
        img = np.random.randint(0, 256, (100, 200, 3), dtype=np.uint8)
        original_data = img.copy()
        result = run_pipeline(img)
        assert np.array_equal(result.original, original_data)
        assert result.original is not img

    def test_pipeline_invalid_config_raises(self):
        img = np.zeros((100, 200, 3), dtype=np.uint8)
        with pytest.raises(ValueError):
            run_pipeline(img, PipelineConfig(target_width=-100))

    def test_pipeline_invalid_input_raises(self):
        with pytest.raises(TypeError):
            run_pipeline("not an image")


class TestRunPreset:
    def test_writes_8bit_grayscale_png(self, page_file, tmp_path):
        out = tmp_path / "out" / "scan_ocr.png"
        result = run_preset(page_file, out, PipelineConfig(preset="bgfix"))
        assert out.exists()
        assert result.output_path == str(out)
        written = load_image(out)
        assert written.ndim == 2
        assert written.dtype == np.uint8

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(ImageIOError, match="not found"):
            run_preset(tmp_path / "missing.png", tmp_path / "out.png", PipelineConfig())


class TestImageIO:
    def test_load_strips_to_pixels(self, page_file):
        img = load_image(page_file)
        assert img.dtype == np.uint8
        assert img.shape[:2] == (280, 360)

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ImageIOError):
            load_image(path)

    def test_oversized_image_raises_io_error(self, page_file):
        with patch("PIL.Image.open", side_effect=Image.DecompressionBombError("too many pixels")):
            with pytest.raises(ImageIOError, match="too many pixels"):
                load_image(page_file)

    def test_16bit_png_scaled_down(self, tmp_path):
        path = tmp_path / "deep.png"
        write_image(np.full((8, 8), 65535, dtype=np.uint16), path, force_8bit_output=False)
        img = load_image(path)
        assert img.dtype == np.uint8
        assert np.all(img == 255)

    def test_unwritable_destination_raises(self, tmp_path, page):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ImageIOError):
            write_image(page, blocker / "out.png")


class TestOutputPaths:
    def test_defaults_next_to_input(self, tmp_path):
        paths = resolve_output_paths(tmp_path / "page.tif", "PNG")
        assert paths.output_dir == tmp_path.resolve()
        assert paths.final == tmp_path.resolve() / "page_ocr.png"
        assert paths.tile_dir == tmp_path.resolve() / "tiles_page_ocr"

    def test_explicit_out_and_outdir(self, tmp_path):
        paths = resolve_output_paths(
            tmp_path / "page.tif", "jpg", out=tmp_path / "final.jpg", outdir=tmp_path / "work"
        )
        assert paths.final == tmp_path / "final.jpg"
        assert paths.tile_dir == tmp_path / "work" / "tiles_page_ocr"


class TestSteps:
    def test_grayscale_step_is_pure(self):
        step = GrayscaleStep()
        rgb = np.full((10, 10, 3), 128, dtype=np.uint8)
        original = rgb.copy()
        assert step.apply(rgb).shape == (10, 10)
        assert np.array_equal(rgb, original)

    def test_resize_scale_factor_metadata(self):
        step = ResizeStep(target_width=1000)
        step.apply(np.zeros((1000, 2000, 3), dtype=np.uint8))
        assert step.get_metadata()["scale_factor"] == 2.0

    def test_clahe_step_keeps_shape(self):
        step = CLAHEStep(args=parse_clahe_args("25x25+128+3"))
        gray = np.full((100, 100), 128, dtype=np.uint8)
        gray[40:60, 40:60] = 138
        result = step.apply(gray)
        assert result.shape == gray.shape
        assert result.dtype == gray.dtype


class TestPipeline:
    """Tests for the Pipeline class."""

    def test_empty_pipeline_returns_original(self):
        img = np.random.randint(0, 256, (100, 100, 3), dtype=np.uint8)
        result = Pipeline(steps=[]).run(img)
        assert np.array_equal(result.final, img)
        assert result.final is not img

    def test_tracks_intermediates(self):
        pipeline = Pipeline(steps=[GrayscaleStep(), ResizeStep(target_width=100)])
        result = pipeline.run(np.zeros((100, 200, 3), dtype=np.uint8))
        assert [step.name for step in result.steps] == ["grayscale", "resize(100)"]
        assert result.get_intermediate("grayscale").shape == (100, 200)
        assert result.get_intermediate("unknown") is None
        assert result.scale_factor == 2.0
        assert len(pipeline) == 2
