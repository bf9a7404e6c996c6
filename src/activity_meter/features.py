"""
Transform a window of raw accelerometer samples into the feature vector the model expects.

For each axis (x, y, z), compute:
- mean
- std (population, ddof=0)

Plus one magnitude feature:
- rms: mean of the per-sample 3D magnitude sqrt(x^2 + y^2 + z^2)

NOTE: "rms" is not a textbook root-mean-square. The stored scaler and the model
were fitted against the mean-of-magnitudes formula, so it has to stay exactly this.
"""

from typing import Dict

import numpy as np

from activity_meter.constants import FEATURE_NAMES
from activity_meter.errors import InvalidWindowError


def _as_window(window) -> np.ndarray:
    """
    Convert a window (array-like of [x, y, z] rows) to a float array of shape (N, 3).
    """
    w = np.asarray(window, dtype=float)
    if w.size == 0:
        raise InvalidWindowError("Cannot extract features from an empty window")
    if w.ndim != 2 or w.shape[1] != 3:
        raise InvalidWindowError(
            f"Window must have shape (N, 3), got {w.shape}"
        )
    return w


def extract_features(window) -> np.ndarray:
    """
    Converts a window of raw [x, y, z] values into one feature row.

    Returns a float64 array of length 7:
        [mean_x, mean_y, mean_z, std_x, std_y, std_z, rms]

    The window is only read, never modified.
    """
    w = _as_window(window)

    means = np.mean(w, axis=0)
    stds = np.std(w, axis=0)  # ddof=0 -> population std
    magnitudes = np.sqrt(np.sum(w**2, axis=1))
    rms = np.mean(magnitudes)

    return np.concatenate([means, stds, [rms]]).astype(np.float64)


def features_as_dict(features) -> Dict[str, float]:
    """Name each entry of a feature vector (for logging / debugging)."""
    return {name: float(v) for name, v in zip(FEATURE_NAMES, features)}
