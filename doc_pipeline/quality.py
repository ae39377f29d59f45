import logging
from typing import List, Optional

import cv2
import numpy as np

from config import settings
from .errors import SignalAnalysisError
from .models import FraudDetectionCheck

logger = logging.getLogger(__name__)

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float32)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float32)


class ComputeScope:
    """
    Tracks the intermediate buffers of one score computation.
    On exit, success or failure, the scope drops its references to every
    buffer registered with ``keep``; a buffer is freed once no local name
    still refers to it.
    """

    def __init__(self):
        self._buffers: List[np.ndarray] = []

    def keep(self, array: np.ndarray) -> np.ndarray:
        self._buffers.append(array)
        return array

    @property
    def live_buffers(self) -> int:
        return len(self._buffers)

    def __enter__(self) -> "ComputeScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._buffers.clear()
        return False


def prepare_frame(image: np.ndarray, size: int = 224) -> np.ndarray:
    """Resize an OpenCV image to a size x size x 3 RGB float frame in [0, 1]"""
    if image is None or image.size == 0:
        raise SignalAnalysisError("Empty image")
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    resized = cv2.resize(image, (size, size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    return rgb.astype(np.float32) / 255.0


def _finite(score: float, name: str) -> float:
    if not np.isfinite(score):
        raise SignalAnalysisError(f"Non-finite {name} score")
    return float(score)


def _clamp(value: float) -> float:
    return float(min(max(value, 0.0), 1.0))


class ScoreSource:
    """Produces the three raw fraud signal scores for a prepared frame"""
    demo = False

    def noise_score(self, frame: np.ndarray) -> float:
        raise NotImplementedError

    def pattern_score(self, frame: np.ndarray) -> float:
        raise NotImplementedError

    def color_score(self, frame: np.ndarray) -> float:
        raise NotImplementedError


class SignalScoreSource(ScoreSource):
    """Deterministic scores computed from the pixel data"""

    def noise_score(self, frame: np.ndarray) -> float:
        """Mean Sobel gradient magnitude of the zero-padded grayscale frame"""
        with ComputeScope() as scope:
            gray = scope.keep(frame.mean(axis=2))
            padded = scope.keep(np.pad(gray, 1, mode="constant"))
            gx = scope.keep(cv2.filter2D(padded, cv2.CV_32F, SOBEL_X)[1:-1, 1:-1])
            gy = scope.keep(cv2.filter2D(padded, cv2.CV_32F, SOBEL_Y)[1:-1, 1:-1])
            magnitude = scope.keep(np.sqrt(np.square(gx) + np.square(gy)))
            return _finite(magnitude.mean(), "noise")

    def pattern_score(self, frame: np.ndarray) -> float:
        """Mean of the down, right and down-right shifted grayscale crops"""
        with ComputeScope() as scope:
            gray = scope.keep(frame.mean(axis=2))
            shifted = scope.keep(np.stack([
                gray[1:, :-1],
                gray[:-1, 1:],
                gray[1:, 1:],
            ]))
            return _finite(shifted.mean(), "pattern")

    def color_score(self, frame: np.ndarray) -> float:
        """1 - (spread of channel means + sum of channel std devs) / 4"""
        with ComputeScope() as scope:
            channels = [scope.keep(frame[:, :, c]) for c in range(3)]
            means = [float(c.mean()) for c in channels]
            stds = [float(c.std()) for c in channels]
            mean_diff = max(means) - min(means)
            std_sum = sum(stds)
            return _finite(1 - (mean_diff + std_sum) / 4, "color")


class RandomScoreSource(ScoreSource):
    """
    Bounded pseudo-random scores for demos and UI tests.
    Not an analyzer: the output says nothing about the image.
    """
    demo = True

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def noise_score(self, frame: np.ndarray) -> float:
        manipulation = self.rng.uniform(0.7, 1.0)
        return float(1 - manipulation)

    def pattern_score(self, frame: np.ndarray) -> float:
        return float(self.rng.uniform(0.8, 1.0))

    def color_score(self, frame: np.ndarray) -> float:
        return float(self.rng.uniform(0.85, 1.0))


def build_score_source(name: Optional[str] = None, seed: Optional[int] = None) -> ScoreSource:
    name = (name or settings.FRAUD_SCORE_SOURCE).lower()
    if name == "signal":
        return SignalScoreSource()
    if name == "random":
        logger.warning("Fraud checks running on random scores (demo mode)")
        return RandomScoreSource(seed if seed is not None else settings.FRAUD_RANDOM_SEED)
    raise ValueError(f"Unknown fraud score source: {name}")


class ImageSignalAnalyzer:
    """
    Computes the fraud signal checks for a document image.
    Always returns a complete set of checks; a failure collapses them into
    a single failed "Fraud Detection" check.
    """

    def __init__(self, score_source: Optional[ScoreSource] = None):
        self.score_source = score_source or build_score_source()
        self.frame_size = settings.SIGNAL_FRAME_SIZE
        self.max_noise_level = settings.MAX_NOISE_LEVEL
        self.min_pattern_score = settings.MIN_PATTERN_SCORE
        self.min_color_score = settings.MIN_COLOR_SCORE

    def _details(self, text: str) -> str:
        return f"[demo] {text}" if self.score_source.demo else text

    def check_manipulation(self, noise_level: float) -> FraudDetectionCheck:
        return FraudDetectionCheck(
            check="Digital Manipulation",
            passed=noise_level < self.max_noise_level,
            confidence=_clamp(1 - noise_level),
            details=self._details(f"Noise level: {noise_level:.3f}"),
        )

    def check_pattern(self, pattern_score: float) -> FraudDetectionCheck:
        return FraudDetectionCheck(
            check="Pattern Consistency",
            passed=pattern_score > self.min_pattern_score,
            confidence=_clamp(pattern_score),
            details=self._details(f"Pattern score: {pattern_score:.3f}"),
        )

    def check_color(self, color_score: float) -> FraudDetectionCheck:
        return FraudDetectionCheck(
            check="Color Consistency",
            passed=color_score > self.min_color_score,
            confidence=_clamp(color_score),
            details=self._details(f"Color consistency score: {color_score:.3f}"),
        )

    def analyze(self, image: np.ndarray) -> List[FraudDetectionCheck]:
        try:
            with ComputeScope() as scope:
                frame = scope.keep(prepare_frame(image, self.frame_size))
                noise_level = self.score_source.noise_score(frame)
                pattern_score = self.score_source.pattern_score(frame)
                color_score = self.score_source.color_score(frame)

            return [
                self.check_manipulation(noise_level),
                self.check_pattern(pattern_score),
                self.check_color(color_score),
            ]
        except Exception as e:
            logger.warning("Error in fraud detection: %s", e)
            return [FraudDetectionCheck(
                check="Fraud Detection",
                passed=False,
                confidence=0.0,
                details=str(e) or e.__class__.__name__,
            )]
