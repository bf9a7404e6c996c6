# Use to load the model assets (classifier, scaler.json, labels.json) and recorded sessions for replay

import io
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
import pandas as pd
import requests

from activity_meter.constants import FETCH_TIMEOUT_S, N_FEATURES, REPLAY_COLUMNS
from activity_meter.errors import AssetLoadError
from activity_meter.model import load_classifier
from activity_meter.preprocessing import ScalerParams

log = logging.getLogger("activity_meter.data_loader")


@dataclass(frozen=True)
class Assets:
    """Everything inference needs, loaded once at startup."""

    model: Any
    scaler: ScalerParams
    labels: Tuple[str, ...]


def is_url(source: str) -> bool:
    return str(source).startswith(("http://", "https://"))


# Read raw bytes from a local path or an http(s) URL
def fetch_bytes(source: str, timeout: float = FETCH_TIMEOUT_S) -> bytes:
    try:
        if is_url(source):
            resp = requests.get(source, timeout=timeout)
            resp.raise_for_status()
            return resp.content
        with open(source, "rb") as fh:
            return fh.read()
    except (requests.RequestException, OSError) as e:
        raise AssetLoadError(f"Could not fetch {source}: {e}") from e


def fetch_json(source: str, timeout: float = FETCH_TIMEOUT_S) -> Any:
    raw = fetch_bytes(source, timeout=timeout)
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise AssetLoadError(f"Malformed JSON in {source}: {e}") from e


def _numeric_array(data: dict, key: str, source: str) -> np.ndarray:
    if key not in data:
        raise AssetLoadError(f"{source} is missing '{key}'")
    values = data[key]
    if not isinstance(values, list) or any(
        isinstance(v, bool) or not isinstance(v, (int, float)) for v in values
    ):
        raise AssetLoadError(f"'{key}' in {source} must be a list of numbers")
    if len(values) != N_FEATURES:
        raise AssetLoadError(
            f"'{key}' in {source} has {len(values)} entries, expected {N_FEATURES}"
        )
    arr = np.asarray(values, dtype=float)
    if not np.all(np.isfinite(arr)):
        raise AssetLoadError(f"'{key}' in {source} contains non-finite values")
    return arr


# scaler.json: {"mean": [7 numbers], "scale": [7 numbers]}
def parse_scaler(data: Any, source: str = "scaler") -> ScalerParams:
    if not isinstance(data, dict):
        raise AssetLoadError(f"{source} must be a JSON object with 'mean' and 'scale'")
    mean = _numeric_array(data, "mean", source)
    scale = _numeric_array(data, "scale", source)
    return ScalerParams.from_sequences(mean, scale)


# labels.json: ["Downstairs", "Jogging", ...] index-aligned with the classifier output
def parse_labels(data: Any, source: str = "labels") -> Tuple[str, ...]:
    if not isinstance(data, list) or not data:
        raise AssetLoadError(f"{source} must be a non-empty JSON array of strings")
    if not all(isinstance(v, str) for v in data):
        raise AssetLoadError(f"{source} must only contain strings")
    return tuple(data)


def load_scaler(source: str, timeout: float = FETCH_TIMEOUT_S) -> ScalerParams:
    return parse_scaler(fetch_json(source, timeout=timeout), source)


def load_labels(source: str, timeout: float = FETCH_TIMEOUT_S) -> Tuple[str, ...]:
    return parse_labels(fetch_json(source, timeout=timeout), source)


def load_model(source: str, timeout: float = FETCH_TIMEOUT_S):
    """Load the classifier bundle. Remote bundles are downloaded and unpickled from memory."""
    if is_url(source):
        return load_classifier(io.BytesIO(fetch_bytes(source, timeout=timeout)))
    if not os.path.exists(source):
        raise AssetLoadError(f"Classifier bundle not found: {source}")
    return load_classifier(source)


# returns the raw numeric time series (rows=time, cols=channels).
def load_one_csv(csv_path: str) -> pd.DataFrame:
    # comma-delimited, no header
    return pd.read_csv(csv_path, header=None)


def load_recording(csv_path: str, columns=REPLAY_COLUMNS) -> pd.DataFrame:
    """
    Load a recorded session and keep the accelerometer x/y/z columns,
    renamed to x, y, z. Missing values stay NaN (Sample.from_reading zeroes them).
    """
    df = load_one_csv(csv_path)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(
            f"{csv_path} has {df.shape[1]} columns, cannot use columns {list(columns)}"
        )
    out = df.loc[:, list(columns)].apply(pd.to_numeric, errors="coerce")
    out.columns = ["x", "y", "z"]
    log.info("Loaded recording %s (%d samples)", csv_path, len(out))
    return out
