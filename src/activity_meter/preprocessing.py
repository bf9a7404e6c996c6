"""
Feature standardization before the classifier:
- ScalerParams holds the per-feature mean / scale fitted offline
- standardize() centers and scales a feature vector with them
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from activity_meter.constants import N_FEATURES, SCALE_EPSILON
from activity_meter.errors import DimensionMismatchError, MissingScalerError


@dataclass(frozen=True)
class ScalerParams:
    """Per-feature mean and scale, same layout as a fitted StandardScaler."""

    mean: tuple
    scale: tuple

    @classmethod
    def from_sequences(cls, mean: Sequence[float], scale: Sequence[float]) -> "ScalerParams":
        return cls(
            mean=tuple(float(v) for v in mean),
            scale=tuple(float(v) for v in scale),
        )


# (x - mean) / max(scale, eps), element-wise
def standardize(features, scaler: Optional[ScalerParams]) -> np.ndarray:
    if scaler is None:
        raise MissingScalerError("Scaler parameters are not loaded")

    x = np.asarray(features, dtype=float).ravel()
    mean = np.asarray(scaler.mean, dtype=float)
    scale = np.asarray(scaler.scale, dtype=float)

    if not (x.size == mean.size == scale.size == N_FEATURES):
        raise DimensionMismatchError(
            f"Expected {N_FEATURES} features and scaler entries, got "
            f"features={x.size}, mean={mean.size}, scale={scale.size}"
        )

    return (x - mean) / np.maximum(scale, SCALE_EPSILON)
