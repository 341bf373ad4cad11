"""Tests for variant quality scoring."""

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest
import pytesseract

from preprocessing.arguments import parse_canny_args
from preprocessing.config import PipelineConfig
from preprocessing.errors import ConfigError, MissingDependencyError
from preprocessing.filters import ImageStats
from selection.scoring import (
    OcrFeedbackScorer,
    Stats2Scorer,
    StatsScorer,
    UniformScorer,
    build_scorer,
    edge_score,
    stats_score,
)


def fixed_stats(entropy, stddev):
    return lambda image: ImageStats(entropy=entropy, stddev=stddev, mean=128.0)


class TestStatsScore:
    def test_weighted_sum(self):
        assert stats_score(ImageStats(entropy=5.0, stddev=40.0, mean=0)) == pytest.approx(15.5)
        assert stats_score(ImageStats(entropy=4.0, stddev=60.0, mean=0)) == pytest.approx(20.8)

    def test_scorer_uses_measured_stats(self):
        scorer = StatsScorer(measure=fixed_stats(4.0, 60.0))
        assert scorer.score(np.zeros((4, 4), dtype=np.uint8)) == pytest.approx(20.8)

    def test_blank_image_scores_zero(self):
        assert StatsScorer().score(np.full((20, 20), 255, dtype=np.uint8)) == 0.0

    def test_textured_beats_blank(self, page):
        blank = np.full_like(page, 200)
        assert StatsScorer().score(page) > StatsScorer().score(blank)


class TestStats2Score:
    def test_blend_of_stats_and_edges(self, page):
        canny = parse_canny_args("0x1+10%+30%")
        scorer = Stats2Scorer(canny=canny)
        expected = 0.55 * StatsScorer().score(page) + 0.45 * edge_score(page, canny)
        assert scorer.score(page) == pytest.approx(expected)

    def test_injected_edge_score(self):
        scorer = Stats2Scorer(measure=fixed_stats(5.0, 40.0), edges=lambda image, canny: 10.0)
        assert scorer.score(np.zeros((4, 4), dtype=np.uint8)) == pytest.approx(
            0.55 * 15.5 + 0.45 * 10.0
        )

    def test_edge_score_is_mean_of_edge_map(self):
        img = np.zeros((40, 40), dtype=np.uint8)
        img[:, 20:] = 255
        score = edge_score(img, parse_canny_args("0x1+10%+30%"))
        assert 0.0 < score < 255.0


class TestOcrFeedbackScorer:
    def test_counts_non_whitespace_characters(self):
        engine = MagicMock()
        engine.recognize.return_value = "ab c\n\fd \t"
        scorer = OcrFeedbackScorer(engine=engine, lang="eng+jpn", psm=4)
        assert scorer.score(np.zeros((4, 4), dtype=np.uint8)) == 4.0
        engine.recognize.assert_called_once()
        _, lang, psm = engine.recognize.call_args.args
        assert (lang, psm) == ("eng+jpn", 4)

    def test_ocr_failure_scores_zero(self, caplog):
        engine = MagicMock()
        engine.recognize.side_effect = pytesseract.TesseractError(1, "boom")
        scorer = OcrFeedbackScorer(engine=engine)
        with caplog.at_level(logging.WARNING):
            assert scorer.score(np.zeros((4, 4), dtype=np.uint8)) == 0.0
        assert "OCR failed" in caplog.text

    def test_timeout_scores_zero(self):
        engine = MagicMock()
        engine.recognize.side_effect = RuntimeError("Tesseract process timeout")
        assert OcrFeedbackScorer(engine=engine).score(np.zeros((4, 4), dtype=np.uint8)) == 0.0


class TestUniformScorer:
    def test_same_score_for_everything(self, page):
        scorer = UniformScorer()
        assert scorer.score(page) == scorer.score(np.zeros((2, 2), dtype=np.uint8)) == 1.0


class TestBuildScorer:
    @pytest.mark.parametrize("mode,cls", [
        ("stats", StatsScorer),
        ("stats2", Stats2Scorer),
        ("none", UniformScorer),
    ])
    def test_selects_strategy(self, mode, cls):
        scorer = build_scorer(PipelineConfig(select_mode=mode))
        assert isinstance(scorer, cls)
        assert scorer.name == mode

    def test_tesseract_uses_engine_from_factory(self):
        engine = MagicMock()
        factory = MagicMock(return_value=engine)
        config = PipelineConfig(select_mode="tesseract", tess_lang="tha", tess_psm=7, tess_timeout=5)
        scorer = build_scorer(config, engine_factory=factory)
        assert isinstance(scorer, OcrFeedbackScorer)
        assert scorer.engine is engine
        assert (scorer.lang, scorer.psm) == ("tha", 7)
        factory.assert_called_once_with(timeout=5)

    def test_missing_engine_falls_back_to_stats(self, caplog):
        def unavailable(**kwargs):
            raise MissingDependencyError("tesseract binary not found")

        with caplog.at_level(logging.WARNING):
            scorer = build_scorer(PipelineConfig(select_mode="tesseract"), engine_factory=unavailable)
        assert isinstance(scorer, StatsScorer)
        assert scorer.name == "stats"
        assert "falling back to stats" in caplog.text

    def test_unknown_mode_raises(self):
        with pytest.raises(ConfigError, match="Unknown selection mode"):
            build_scorer(PipelineConfig(select_mode="random"))
