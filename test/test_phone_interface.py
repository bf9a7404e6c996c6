import asyncio
import threading

import pytest
import requests

from activity_meter import phone_interface
from activity_meter.errors import PermissionDeniedError
from activity_meter.inference_pipeline import PipelineStatus
from activity_meter.phone_interface import CaptureController, PhyphoxSource, ReplaySource

from fakes import STATIONARY, FakeModel, ListSource, RecordingSink, make_pipeline


class _FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


def _noop(*args):
    pass


def test_phyphox_query_url():
    source = PhyphoxSource("http://192.168.0.36:8080/", _noop)
    assert source.query_url == "http://192.168.0.36:8080/get?accX&accY&accZ"


def test_phyphox_read_latest_takes_last_values(monkeypatch):
    payload = {
        "buffer": {
            "accX": {"buffer": [0.1, 0.2], "size": 0},
            "accY": {"buffer": [1.0], "size": 0},
            "accZ": {"buffer": [], "size": 0},
        },
        "status": {"measuring": True},
    }
    monkeypatch.setattr(phone_interface.requests, "get", lambda url, timeout: _FakeResponse(payload))
    reading = PhyphoxSource("http://phone:8080", _noop).read_latest()
    # empty buffer -> None, defaulted to 0.0 when the sample is built
    assert reading == {"x": 0.2, "y": 1.0, "z": None}


def test_phyphox_missing_sensor_is_format_error(monkeypatch):
    payload = {"buffer": {"accX": {"buffer": [0.0]}}}
    monkeypatch.setattr(phone_interface.requests, "get", lambda url, timeout: _FakeResponse(payload))
    with pytest.raises(KeyError):
        PhyphoxSource("http://phone:8080", _noop).read_latest()


def test_phyphox_non_object_payload_is_format_error(monkeypatch):
    monkeypatch.setattr(phone_interface.requests, "get", lambda url, timeout: _FakeResponse([1, 2, 3]))
    source = PhyphoxSource("http://phone:8080", _noop)
    with pytest.raises(ValueError):
        source.read_latest()
    with pytest.raises(PermissionDeniedError):
        source.request_permission()


def test_phyphox_permission_denied_when_unreachable(monkeypatch):
    def refuse(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(phone_interface.requests, "get", refuse)
    with pytest.raises(PermissionDeniedError):
        PhyphoxSource("http://phone:8080", _noop).request_permission()


def test_phyphox_poll_loop_reports_errors_and_keeps_going(monkeypatch):
    readings = []
    statuses = []
    responses = iter([requests.Timeout("slow"), {"accX": [1.0], "accY": [2.0], "accZ": [3.0]}])
    got_reading = threading.Event()

    def fake_get(url, timeout):
        item = next(responses, None)
        if isinstance(item, Exception):
            raise item
        if item is None:
            item = {"accX": [1.0], "accY": [2.0], "accZ": [3.0]}
        return _FakeResponse(item)

    def on_reading(reading):
        readings.append(reading)
        got_reading.set()

    monkeypatch.setattr(phone_interface.requests, "get", fake_get)
    source = PhyphoxSource(
        "http://phone:8080", on_reading, statuses.append, poll_interval=0.01, error_backoff=0.01
    )
    source.start()
    assert got_reading.wait(2.0)
    source.stop()
    source.join(2.0)

    assert not source.is_alive()
    assert readings[0] == {"x": 1.0, "y": 2.0, "z": 3.0}
    assert any("Request to phyphox failed" in s for s in statuses)


def test_phyphox_poll_loop_survives_non_object_payload(monkeypatch):
    readings = []
    statuses = []
    responses = iter([[1, 2, 3], "null"])
    got_reading = threading.Event()

    def fake_get(url, timeout):
        return _FakeResponse(next(responses, {"accX": [1.0], "accY": [2.0], "accZ": [3.0]}))

    def on_reading(reading):
        readings.append(reading)
        got_reading.set()

    monkeypatch.setattr(phone_interface.requests, "get", fake_get)
    source = PhyphoxSource(
        "http://phone:8080", on_reading, statuses.append, poll_interval=0.01, error_backoff=0.01
    )
    source.start()
    assert got_reading.wait(2.0)
    source.stop()
    source.join(2.0)

    assert not source.is_alive()
    assert readings[0] == {"x": 1.0, "y": 2.0, "z": 3.0}
    assert sum("Wrong data format" in s for s in statuses) >= 2


def test_replay_source_delivers_rows(tmp_path):
    path = tmp_path / "walk.csv"
    path.write_text("0.00,1.0,2.0,3.0\n0.05,4.0,,6.0\n0.10,7.0,8.0,9.0\n")
    readings = []
    source = ReplaySource(str(path), readings.append, rate_hz=1000.0)
    source.request_permission()
    source.start()
    source.join(2.0)

    assert not source.is_alive()
    assert len(readings) == 3
    assert readings[0] == {"x": 1.0, "y": 2.0, "z": 3.0}


def test_replay_source_missing_file(tmp_path):
    source = ReplaySource(str(tmp_path / "nope.csv"), _noop)
    with pytest.raises(PermissionDeniedError):
        source.request_permission()


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def test_controller_feeds_pipeline_from_source_thread():
    model = FakeModel()
    sink = RecordingSink()
    pipeline = make_pipeline(model=model, sink=sink, window_size=5)
    controller = CaptureController(
        pipeline, lambda cb, status_cb: ListSource([STATIONARY] * 8, cb, status_cb)
    )

    async def scenario():
        await pipeline.load_assets()
        assert await controller.start()
        await _wait_until(lambda: pipeline.state.buffer.samples_seen == 8)
        await pipeline.drain()

    asyncio.run(scenario())
    assert len(pipeline.state.buffer) == 5
    assert model.calls == 1
    assert len(sink.predictions) == 1


def test_controller_start_is_idempotent():
    created = []

    def factory(cb, status_cb):
        source = ListSource([], cb, status_cb, hold=True)
        created.append(source)
        return source

    pipeline = make_pipeline()
    controller = CaptureController(pipeline, factory)

    async def scenario():
        assert await controller.start()
        assert await controller.start()
        assert controller.active
        controller.stop()

    asyncio.run(scenario())
    created[0].join(2.0)
    assert len(created) == 1
    assert not controller.active


def test_controller_permission_denied_stays_inert():
    sink = RecordingSink()
    pipeline = make_pipeline(sink=sink)
    controller = CaptureController(
        pipeline,
        lambda cb, status_cb: ListSource(
            [STATIONARY], cb, status_cb, deny=PermissionDeniedError("not allowed")
        ),
    )

    assert asyncio.run(controller.start()) is False
    assert controller.source is None
    assert not controller.active
    assert any(s.startswith("Sensor access denied") for s in sink.statuses)
    assert len(pipeline.state.buffer) == 0


def test_controller_reports_bad_source_settings_as_denied(tmp_path):
    path = tmp_path / "walk.csv"
    path.write_text("0.00,1.0,2.0,3.0\n")
    sink = RecordingSink()
    pipeline = make_pipeline(sink=sink)
    controller = CaptureController(
        pipeline, lambda cb, status_cb: ReplaySource(str(path), cb, status_cb, rate_hz=0)
    )

    assert asyncio.run(controller.start()) is False
    assert controller.source is None
    assert not controller.active
    assert any(s.startswith("Sensor access denied") for s in sink.statuses)


def test_controller_denied_for_non_object_phyphox_payload(monkeypatch):
    monkeypatch.setattr(phone_interface.requests, "get", lambda url, timeout: _FakeResponse([]))
    sink = RecordingSink()
    pipeline = make_pipeline(sink=sink)
    controller = CaptureController(
        pipeline, lambda cb, status_cb: PhyphoxSource("http://phone:8080", cb, status_cb)
    )

    assert asyncio.run(controller.start()) is False
    assert controller.source is None
    assert any(s.startswith("Sensor access denied") for s in sink.statuses)


def test_capture_works_without_model():
    sink = RecordingSink()
    pipeline = make_pipeline(sink=sink, window_size=3, model_error=RuntimeError("bad bundle"))
    controller = CaptureController(
        pipeline, lambda cb, status_cb: ListSource([STATIONARY] * 6, cb, status_cb)
    )

    async def scenario():
        assert await pipeline.load_assets() is False
        assert await controller.start()
        await _wait_until(lambda: pipeline.state.buffer.samples_seen == 6)

    asyncio.run(scenario())
    assert pipeline.status is PipelineStatus.ASSETS_FAILED
    assert len(pipeline.state.buffer) == 3
    assert sink.predictions == []
    assert any("not loaded" in s for s in sink.statuses)
