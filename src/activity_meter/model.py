import logging
from typing import Sequence, Tuple

import joblib
import numpy as np

from activity_meter.constants import N_FEATURES, UNKNOWN_LABEL
from activity_meter.errors import AssetLoadError, PredictionRuntimeError

log = logging.getLogger("activity_meter.model")


# Load a trained classifier back into memory
# Any estimator works as long as it exposes predict_proba (RandomForest, SVC(probability=True), ...)
def load_classifier(path):
    try:
        model = joblib.load(path)
    except Exception as e:
        raise AssetLoadError(f"Could not load classifier from {path}: {e}") from e

    if not callable(getattr(model, "predict_proba", None)):
        raise AssetLoadError(
            f"Classifier loaded from {path} ({type(model).__name__}) has no predict_proba"
        )
    return model


def predict_distribution(model, vector) -> np.ndarray:
    """
    Run the classifier on one standardized vector (batch size 1).

    The (1, 7) input batch is local to this call and is freed by refcounting
    when it returns or raises.

    Returns the probability distribution as a 1-D float array.
    Raises PredictionRuntimeError if the classifier fails or its output
    is empty / not finite.
    """
    try:
        batch = np.asarray(vector, dtype=float).reshape(1, N_FEATURES)
        out = model.predict_proba(batch)
        probs = np.asarray(out, dtype=float).ravel()
    except Exception as e:
        raise PredictionRuntimeError(f"Classifier failed: {e}") from e

    if probs.size == 0:
        raise PredictionRuntimeError("Classifier returned an empty distribution")
    if not np.all(np.isfinite(probs)):
        raise PredictionRuntimeError(f"Classifier returned non-finite values: {probs}")
    return probs


def argmax_first(probs) -> int:
    """Index of the largest value; ties go to the lowest index."""
    p = np.asarray(probs, dtype=float)
    if p.size == 0:
        raise PredictionRuntimeError("Cannot take arg-max of an empty distribution")
    # np.argmax returns the first occurrence of the maximum
    return int(np.argmax(p))


def decide(probs, labels: Sequence[str]) -> Tuple[str, float]:
    """
    Pick the predicted label and its confidence from a distribution.

    An index with no entry in `labels` maps to UNKNOWN_LABEL.
    Confidence is clipped to [0, 1].
    """
    idx = argmax_first(probs)
    label = labels[idx] if idx < len(labels) else UNKNOWN_LABEL
    if not label:
        label = UNKNOWN_LABEL

    confidence = float(np.clip(probs[idx], 0.0, 1.0))
    if idx >= len(labels):
        log.warning(
            "Predicted index %d has no label (label set has %d entries)", idx, len(labels)
        )
    return label, confidence
