import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class FaceEngine:
    """Compares a live capture with the pensioner's stored portrait."""

    MODEL_NAME = "Facenet512"
    DETECTOR = "opencv"

    @classmethod
    def _embed(cls, path: str) -> Optional[np.ndarray]:
        # deepface ships in the optional "face" extra
        try:
            from deepface import DeepFace
        except ImportError:
            logger.error("deepface is not installed; install pension-verification-api[face]")
            return None

        try:
            faces = DeepFace.represent(img_path=path, model_name=cls.MODEL_NAME,
                                       detector_backend=cls.DETECTOR, enforce_detection=True)
        except ValueError as e:
            logger.warning("no face in %s: %s", path, e)
            return None
        if len(faces) != 1:
            logger.warning("expected one face in %s, found %d", path, len(faces))
            return None
        return np.asarray(faces[0]["embedding"], dtype=float)

    @staticmethod
    def similarity(a: np.ndarray, b: np.ndarray) -> float:
        """Cosine similarity; 0.0 for a zero vector."""
        denom = np.linalg.norm(a) * np.linalg.norm(b)
        return float(np.dot(a, b) / denom) if denom else 0.0

    @classmethod
    def match(cls, reference_path: str, captured_path: str) -> Optional[float]:
        """None when either image lacks exactly one usable face."""
        ref = cls._embed(reference_path)
        cap = cls._embed(captured_path) if ref is not None else None
        if ref is None or cap is None:
            return None
        return cls.similarity(ref, cap)
