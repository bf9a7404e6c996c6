import json

import joblib
import numpy as np
import pytest
import requests
from sklearn.dummy import DummyClassifier

from activity_meter import data_loader
from activity_meter.errors import AssetLoadError


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_scaler(tmp_path):
    path = _write_json(tmp_path / "scaler.json", {"mean": [0, 1, 2, 3, 4, 5, 6], "scale": [1.5] * 7})
    scaler = data_loader.load_scaler(path)
    assert scaler.mean == (0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0)
    assert scaler.scale == (1.5,) * 7


@pytest.mark.parametrize(
    "payload",
    [
        {"mean": [0] * 7},
        {"scale": [1] * 7},
        {"mean": [0] * 6, "scale": [1] * 7},
        {"mean": [0] * 7, "scale": ["1"] * 7},
        {"mean": [0] * 7, "scale": [True] * 7},
        [0] * 7,
    ],
)
def test_load_scaler_rejects_bad_payloads(tmp_path, payload):
    path = _write_json(tmp_path / "scaler.json", payload)
    with pytest.raises(AssetLoadError):
        data_loader.load_scaler(path)


def test_malformed_json(tmp_path):
    path = tmp_path / "scaler.json"
    path.write_text("{mean: [", encoding="utf-8")
    with pytest.raises(AssetLoadError):
        data_loader.load_scaler(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(AssetLoadError):
        data_loader.load_labels(str(tmp_path / "labels.json"))


def test_load_labels(tmp_path):
    path = _write_json(tmp_path / "labels.json", ["Sitting", "Walking"])
    assert data_loader.load_labels(path) == ("Sitting", "Walking")


@pytest.mark.parametrize("payload", [[], {"0": "Sitting"}, ["Sitting", 3]])
def test_load_labels_rejects_bad_payloads(tmp_path, payload):
    path = _write_json(tmp_path / "labels.json", payload)
    with pytest.raises(AssetLoadError):
        data_loader.load_labels(path)


class _FakeResponse:
    def __init__(self, content, status=200):
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")


def test_labels_over_http(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse(b'["Sitting", "Jogging"]')

    monkeypatch.setattr(data_loader.requests, "get", fake_get)
    assert data_loader.load_labels("http://phone.local/labels.json", timeout=3.0) == ("Sitting", "Jogging")
    assert calls == [("http://phone.local/labels.json", 3.0)]


def test_http_error_is_asset_error(monkeypatch):
    monkeypatch.setattr(data_loader.requests, "get", lambda url, timeout: _FakeResponse(b"", status=404))
    with pytest.raises(AssetLoadError):
        data_loader.load_scaler("https://example.org/scaler.json")


def test_load_model_from_path_and_url(tmp_path, monkeypatch):
    model = DummyClassifier(strategy="prior").fit(np.zeros((2, 7)), [0, 1])
    path = tmp_path / "model.joblib"
    joblib.dump(model, path)

    assert hasattr(data_loader.load_model(str(path)), "predict_proba")

    raw = path.read_bytes()
    monkeypatch.setattr(data_loader.requests, "get", lambda url, timeout: _FakeResponse(raw))
    assert hasattr(data_loader.load_model("http://phone.local/model.joblib"), "predict_proba")


def test_load_model_missing(tmp_path):
    with pytest.raises(AssetLoadError):
        data_loader.load_model(str(tmp_path / "web_model" / "model.joblib"))


def test_load_recording(tmp_path):
    path = tmp_path / "walk.csv"
    path.write_text("0.0,1.0,2.0,3.0,0.0\n0.1,4.0,,6.0,0.1\n0.2,7.0,8.0,9.0,0.2\n")
    df = data_loader.load_recording(str(path))
    assert list(df.columns) == ["x", "y", "z"]
    assert df["x"].tolist() == [1.0, 4.0, 7.0]
    assert np.isnan(df["y"].iloc[1])


def test_load_recording_too_few_columns(tmp_path):
    path = tmp_path / "short.csv"
    path.write_text("1.0,2.0\n3.0,4.0\n")
    with pytest.raises(ValueError):
        data_loader.load_recording(str(path))
