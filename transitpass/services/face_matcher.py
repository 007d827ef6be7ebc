"""
Face matching.

A DescriptorExtractor turns a BGR image into one fixed-length descriptor
vector, or None when the image does not contain exactly one face. The
default extractor uses OpenCV's YuNet detector and SFace recognizer
(ONNX models from the opencv_zoo). FaceMatcher compares descriptors by
Euclidean distance against a fixed threshold and fails closed: anything
inconclusive is reported as a non-match.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6


@dataclass
class MatchResult:
    verified: bool
    distance: Optional[float] = None
    reason: str = ""


def decode_image(raw: bytes) -> Optional[np.ndarray]:
    if not raw:
        return None
    return cv2.imdecode(np.frombuffer(raw, np.uint8), cv2.IMREAD_COLOR)


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    a = np.asarray(a, dtype=np.float32).ravel()
    b = np.asarray(b, dtype=np.float32).ravel()
    if a.shape != b.shape:
        raise ValueError(f"descriptor shapes differ: {a.shape} vs {b.shape}")
    return float(np.linalg.norm(a - b))


class DescriptorExtractor:
    def extract_descriptor(self, bgr: np.ndarray) -> Optional[np.ndarray]:
        raise NotImplementedError


class OpenCVDescriptorExtractor(DescriptorExtractor):
    def __init__(self, detector_model: str, recognizer_model: str,
                 score_threshold: float = 0.9, nms_threshold: float = 0.3):
        self.detector_model = detector_model
        self.recognizer_model = recognizer_model
        self.score_threshold = score_threshold
        self.nms_threshold = nms_threshold
        self._detector = None
        self._recognizer = None
        self._lock = threading.Lock()

    def _load(self):
        if self._detector is None:
            logger.info(f"Loading face models: {self.detector_model}, {self.recognizer_model}")
            self._detector = cv2.FaceDetectorYN.create(
                self.detector_model, "", (320, 320), self.score_threshold, self.nms_threshold, 5000)
            self._recognizer = cv2.FaceRecognizerSF.create(self.recognizer_model, "")

    def extract_descriptor(self, bgr: np.ndarray) -> Optional[np.ndarray]:
        # the OpenCV dnn objects keep per-call state (input size)
        with self._lock:
            self._load()
            h, w = bgr.shape[:2]
            self._detector.setInputSize((w, h))
            _, faces = self._detector.detect(bgr)
            if faces is None or len(faces) == 0:
                logger.info("No face detected")
                return None
            if len(faces) > 1:
                logger.info(f"Ambiguous image: {len(faces)} faces detected")
                return None
            aligned = self._recognizer.alignCrop(bgr, faces[0])
            feat = self._recognizer.feature(aligned).flatten().astype(np.float32)
        n = np.linalg.norm(feat) + 1e-9
        return feat / n


class FaceMatcher:
    def __init__(self, extractor: DescriptorExtractor, threshold: float = DEFAULT_THRESHOLD):
        self.extractor = extractor
        self.threshold = threshold

    def compare(self, a: np.ndarray, b: np.ndarray) -> MatchResult:
        distance = euclidean_distance(a, b)
        return MatchResult(verified=distance < self.threshold, distance=distance)

    def match(self, live_image: bytes, reference_path: str) -> MatchResult:
        try:
            live = decode_image(live_image)
            reference = cv2.imread(reference_path, cv2.IMREAD_COLOR)
            if live is None or reference is None:
                return MatchResult(verified=False, reason="unreadable image")

            live_vec = self.extractor.extract_descriptor(live)
            ref_vec = self.extractor.extract_descriptor(reference)
            if live_vec is None or ref_vec is None:
                return MatchResult(verified=False, reason="no single face detected")

            result = self.compare(live_vec, ref_vec)
        except Exception:
            logger.exception("Face comparison failed; treating as no match")
            return MatchResult(verified=False, reason="extraction error")

        logger.info(f"match: dist={result.distance:.4f} thr={self.threshold} -> {result.verified}")
        return result
