"""Tests for the image signal fraud checks."""

import weakref

import numpy as np
import pytest

from doc_pipeline.decision import overall_confidence
from doc_pipeline.errors import SignalAnalysisError
from doc_pipeline.models import FaceDetectionResult
from doc_pipeline.quality import (
    ComputeScope,
    ImageSignalAnalyzer,
    RandomScoreSource,
    ScoreSource,
    SignalScoreSource,
    build_score_source,
    prepare_frame,
)

CHECK_NAMES = ["Digital Manipulation", "Pattern Consistency", "Color Consistency"]


class FixedScoreSource(ScoreSource):
    def __init__(self, noise, pattern, color):
        self.scores = (noise, pattern, color)

    def noise_score(self, frame):
        return self.scores[0]

    def pattern_score(self, frame):
        return self.scores[1]

    def color_score(self, frame):
        return self.scores[2]


class FailingScoreSource(ScoreSource):
    def noise_score(self, frame):
        raise SignalAnalysisError("Non-finite noise score")


@pytest.fixture
def analyzer():
    return ImageSignalAnalyzer(score_source=SignalScoreSource())


def test_prepare_frame_shape_and_range():
    image = np.full((100, 150, 3), 255, dtype=np.uint8)
    frame = prepare_frame(image, 224)
    assert frame.shape == (224, 224, 3)
    assert frame.dtype == np.float32
    assert frame.max() == pytest.approx(1.0)


def test_prepare_frame_accepts_grayscale():
    assert prepare_frame(np.zeros((50, 80), dtype=np.uint8), 32).shape == (32, 32, 3)


def test_prepare_frame_rejects_empty_image():
    with pytest.raises(SignalAnalysisError):
        prepare_frame(np.zeros((0, 0, 3), dtype=np.uint8))


def test_black_image_has_no_noise(analyzer):
    checks = analyzer.analyze(np.zeros((100, 150, 3), dtype=np.uint8))
    assert [c.check for c in checks] == CHECK_NAMES
    manipulation = checks[0]
    assert manipulation.passed
    assert manipulation.confidence == pytest.approx(1.0)
    assert manipulation.details == "Noise level: 0.000"


def test_white_image_passes_every_check(analyzer, white_image):
    checks = analyzer.analyze(white_image)
    assert all(c.passed for c in checks)
    assert checks[1].confidence == pytest.approx(1.0)
    assert checks[2].confidence == pytest.approx(1.0)


def test_striped_image_fails_manipulation(analyzer):
    image = np.zeros((224, 224, 3), dtype=np.uint8)
    for col in range(224):
        if col % 4 >= 2:
            image[:, col] = 255
    manipulation = analyzer.analyze(image)[0]
    assert not manipulation.passed
    assert manipulation.confidence == 0.0


def test_single_color_image_fails_color_check(analyzer):
    red = np.zeros((100, 150, 3), dtype=np.uint8)
    red[:, :, 2] = 255
    color = analyzer.analyze(red)[2]
    assert not color.passed
    assert color.confidence == pytest.approx(0.75)
    assert color.details == "Color consistency score: 0.750"


def test_thresholds_are_strict():
    analyzer = ImageSignalAnalyzer(score_source=FixedScoreSource(0.3, 0.7, 0.8))
    checks = analyzer.analyze(np.zeros((10, 10, 3), dtype=np.uint8))
    assert [c.passed for c in checks] == [False, False, False]


def test_confidences_are_clamped():
    analyzer = ImageSignalAnalyzer(score_source=FixedScoreSource(1.7, 1.2, -0.5))
    checks = analyzer.analyze(np.zeros((10, 10, 3), dtype=np.uint8))
    assert [c.confidence for c in checks] == [0.0, 1.0, 0.0]


def test_failure_collapses_into_single_check():
    analyzer = ImageSignalAnalyzer(score_source=FailingScoreSource())
    checks = analyzer.analyze(np.zeros((10, 10, 3), dtype=np.uint8))
    assert len(checks) == 1
    assert checks[0].check == "Fraud Detection"
    assert not checks[0].passed
    assert checks[0].confidence == 0.0
    assert checks[0].details == "Non-finite noise score"


def test_empty_image_collapses_into_single_check(analyzer):
    checks = analyzer.analyze(np.zeros((0, 0, 3), dtype=np.uint8))
    assert [c.check for c in checks] == ["Fraud Detection"]
    assert checks[0].details == "Empty image"


def test_random_source_is_bounded_and_marked_demo():
    source = RandomScoreSource(seed=7)
    frame = np.zeros((4, 4, 3), dtype=np.float32)
    for _ in range(50):
        assert 0.0 <= source.noise_score(frame) <= 0.3
        assert 0.8 <= source.pattern_score(frame) <= 1.0
        assert 0.85 <= source.color_score(frame) <= 1.0

    checks = ImageSignalAnalyzer(score_source=source).analyze(np.zeros((10, 10, 3), dtype=np.uint8))
    assert all(c.details.startswith("[demo] ") for c in checks)


def test_random_source_is_reproducible_with_seed():
    frame = np.zeros((4, 4, 3), dtype=np.float32)
    first = RandomScoreSource(seed=3).pattern_score(frame)
    second = RandomScoreSource(seed=3).pattern_score(frame)
    assert first == second


def test_build_score_source():
    assert isinstance(build_score_source("signal"), SignalScoreSource)
    assert isinstance(build_score_source("random", seed=1), RandomScoreSource)
    with pytest.raises(ValueError):
        build_score_source("bogus")


def test_compute_scope_releases_buffers_on_error():
    scope = ComputeScope()
    with pytest.raises(RuntimeError):
        with scope:
            scope.keep(np.zeros(3))
            scope.keep(np.ones(3))
            assert scope.live_buffers == 2
            raise RuntimeError("boom")
    assert scope.live_buffers == 0


def test_compute_scope_drops_its_references():
    scope = ComputeScope()
    with scope:
        buffer_ref = weakref.ref(scope.keep(np.zeros(3)))
        assert buffer_ref() is not None
    assert buffer_ref() is None


def _noise_image():
    return np.random.default_rng(11).integers(0, 256, size=(120, 180, 3), dtype=np.uint8)


def _striped_image():
    image = np.zeros((90, 140, 3), dtype=np.uint8)
    image[:, ::3] = 255
    return image


def _single_channel_image():
    image = np.zeros((80, 80, 3), dtype=np.uint8)
    image[:, :, 1] = 200
    return image


def _grayscale_image():
    return np.tile(np.linspace(0, 255, 64, dtype=np.uint8), (48, 1))


def _bgra_image():
    return np.random.default_rng(5).integers(0, 256, size=(50, 70, 4), dtype=np.uint8)


@pytest.mark.parametrize("make_image", [
    _noise_image, _striped_image, _single_channel_image, _grayscale_image, _bgra_image,
])
def test_every_confidence_within_bounds(analyzer, make_image):
    checks = analyzer.analyze(make_image())

    assert [c.check for c in checks] == CHECK_NAMES
    for check in checks:
        assert 0.0 <= check.confidence <= 1.0

    for face in (FaceDetectionResult.none(), FaceDetectionResult(face_detected=True, confidence=1.0)):
        assert 0.0 <= overall_confidence(checks, face) <= 1.0
