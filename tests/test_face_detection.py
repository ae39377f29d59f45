"""Tests for face detection."""

import numpy as np
import pytest

from doc_pipeline.face_detection import FaceDetector
from doc_pipeline.models import FaceDetectionResult


class FakeNet:
    def __init__(self, detections=None, error=None):
        self.detections = detections
        self.error = error

    def setInput(self, blob):
        self.blob = blob

    def forward(self):
        if self.error:
            raise self.error
        return self.detections


def ssd_output(*rows):
    """Wrap detection rows in the (1, 1, N, K) SSD output shape."""
    return np.array([[list(rows)]], dtype=np.float32)


@pytest.fixture
def image():
    return np.zeros((100, 200, 3), dtype=np.uint8)


@pytest.fixture
def detector(tmp_path):
    return FaceDetector(
        config_path=str(tmp_path / "deploy.prototxt"),
        weights_path=str(tmp_path / "weights.caffemodel"),
        min_confidence=0.5,
    )


def test_missing_model_reports_no_face(detector, image):
    assert detector.detect(image) == FaceDetectionResult.none()


def test_best_detection_is_used(detector, image):
    detector._net = FakeNet(ssd_output(
        [0, 1, 0.2, 0.1, 0.1, 0.3, 0.3],
        [0, 1, 0.87, 0.4, 0.2, 0.6, 0.8],
    ))
    result = detector.detect(image)
    assert result.face_detected
    assert result.confidence == pytest.approx(0.87)
    assert result.landmarks == []


def test_low_confidence_is_not_a_face(detector, image):
    detector._net = FakeNet(ssd_output([0, 1, 0.3, 0.1, 0.1, 0.3, 0.3]))
    result = detector.detect(image)
    assert not result.face_detected
    assert result.confidence == pytest.approx(0.3)


def test_landmarks_scaled_to_image(detector, image):
    detector._net = FakeNet(ssd_output(
        [0, 1, 0.9, 0.1, 0.1, 0.5, 0.5, 0.5, 0.5, 0.25, 0.75],
    ))
    result = detector.detect(image)
    assert [(p.x, p.y) for p in result.landmarks] == [(100.0, 50.0), (50.0, 75.0)]


def test_inference_error_reports_no_face(detector, image):
    detector._net = FakeNet(error=RuntimeError("forward failed"))
    assert detector.detect(image) == FaceDetectionResult.none()


def test_failed_model_load_is_remembered(detector, image):
    """The model files are looked up once; later calls go straight to "no face"."""
    attempts = []
    original_load = detector._load_model

    def counting_load():
        attempts.append(1)
        return original_load()

    detector._load_model = counting_load

    assert detector.detect(image) == FaceDetectionResult.none()
    assert detector.detect(image) == FaceDetectionResult.none()
    assert len(attempts) == 1
