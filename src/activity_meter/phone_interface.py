import asyncio
import logging
import threading

import requests

from activity_meter.constants import (
    ERROR_BACKOFF_S,
    POLL_INTERVAL_S,
    REPLAY_COLUMNS,
    REPLAY_HZ,
    SENSORS,
)
from activity_meter.data_loader import load_recording
from activity_meter.errors import PermissionDeniedError

log = logging.getLogger("activity_meter.phone")


class SampleSource(threading.Thread):
    """
    Background thread delivering raw {x, y, z} readings through `callback`.
    Problems worth showing to the user go through `status_callback`.
    """

    def __init__(self, callback, status_callback=None):
        super().__init__()
        self.callback = callback
        self.status_callback = status_callback
        self.stop_event = threading.Event()
        self.daemon = True  # do not block program exit

    def request_permission(self) -> None:
        """Raise PermissionDeniedError if this source cannot deliver samples."""

    def report(self, text: str) -> None:
        if self.status_callback is not None:
            self.status_callback(text)

    def stop(self):
        """Signal the thread to stop on the next loop."""
        self.stop_event.set()


class PhyphoxSource(SampleSource):
    """
    Polls a phyphox /get endpoint and sends the latest accelerometer values.
    Full query URL: "http://yoururlfromphyphox/get?accX&accY&accZ" (shown in the phyphox app)
    """

    def __init__(
        self,
        url,
        callback,
        status_callback=None,
        sensors=SENSORS,
        poll_interval=POLL_INTERVAL_S,
        error_backoff=ERROR_BACKOFF_S,
        timeout=2.0,
    ):
        super().__init__(callback, status_callback)
        self.base_url = url.rstrip("/")
        self.sensors = list(sensors)
        self.query_url = self.base_url + "/get?" + "&".join(self.sensors)
        self.poll_interval = poll_interval
        self.error_backoff = error_backoff
        self.timeout = timeout

    def request_permission(self) -> None:
        """
        phyphox only answers when "Allow remote access" is enabled on the phone,
        so one successful poll is the permission.
        """
        try:
            self.read_latest()
        except requests.RequestException as e:
            raise PermissionDeniedError(
                f"phyphox at {self.base_url} is not reachable ({e}). "
                "Enable remote access in phyphox and check the URL."
            ) from e
        except (KeyError, IndexError, ValueError, TypeError) as e:
            raise PermissionDeniedError(
                f"phyphox at {self.base_url} does not provide {self.sensors}: {e}"
            ) from e

    def read_latest(self) -> dict:
        """
        Request latest sensor values from phyphox.
        Returns {"x": ..., "y": ..., "z": ...}; an empty buffer gives None for that axis.
        """
        resp = requests.get(self.query_url, timeout=self.timeout)
        resp.raise_for_status()
        data_json = resp.json()
        if not isinstance(data_json, dict):
            raise ValueError(f"Unexpected JSON format: {data_json}")

        # Sensor objects live either under "buffer" or at the top level
        container = data_json.get("buffer", None)
        sensor_root = container if isinstance(container, dict) else data_json
        if not isinstance(sensor_root, dict):
            raise ValueError(f"Unexpected JSON format: {data_json}")

        values = []
        for sensor in self.sensors:
            if sensor not in sensor_root:
                raise KeyError(
                    f"Sensor '{sensor}' not found in response. "
                    f"Available keys: {list(sensor_root.keys())}"
                )
            sensor_obj = sensor_root[sensor]
            buffer_vals = sensor_obj.get("buffer", None) if isinstance(sensor_obj, dict) else sensor_obj
            if not isinstance(buffer_vals, (list, tuple)):
                raise TypeError(f"Buffer for sensor '{sensor}' is not a list")

            # Take the most recent value, None until phyphox has data
            values.append(buffer_vals[-1] if buffer_vals else None)

        return dict(zip(("x", "y", "z"), values))

    def run(self):
        log.info("Polling phyphox at: %s", self.query_url)

        while not self.stop_event.is_set():
            try:
                self.callback(self.read_latest())

            except requests.RequestException as e:
                # Networking problems: timeout, connection refused, etc.
                log.warning("Request to phyphox failed: %s", e)
                self.report(
                    "Request to phyphox failed. Check that phone and PC are on the "
                    "same network and remote access is enabled."
                )
                # Wait a bit longer before next attempt
                self.stop_event.wait(self.error_backoff)
                continue

            except (KeyError, IndexError, ValueError, TypeError) as e:
                # Problems with data format or missing buffers
                log.warning("Data format error: %s", e)
                self.report(f"Wrong data format from phyphox, expected buffers {self.sensors}")
                self.stop_event.wait(self.error_backoff)
                continue

            # Normal polling rate
            self.stop_event.wait(self.poll_interval)

        log.info("Stopped polling phyphox.")


class ReplaySource(SampleSource):
    """
    Replays a recorded CSV session at a fixed rate, as if it came from the phone.
    Handy for demos and for checking a model without a phone at hand.
    """

    def __init__(
        self,
        csv_path,
        callback,
        status_callback=None,
        rate_hz=REPLAY_HZ,
        columns=REPLAY_COLUMNS,
        loop_forever=False,
    ):
        super().__init__(callback, status_callback)
        if rate_hz <= 0:
            raise ValueError(f"rate_hz must be > 0, got {rate_hz}")
        self.csv_path = csv_path
        self.rate_hz = rate_hz
        self.columns = columns
        self.loop_forever = loop_forever
        self.recording = None

    def request_permission(self) -> None:
        try:
            self.recording = load_recording(self.csv_path, self.columns)
        except (OSError, ValueError) as e:
            raise PermissionDeniedError(f"Cannot replay {self.csv_path}: {e}") from e
        if self.recording.empty:
            raise PermissionDeniedError(f"Recording {self.csv_path} has no samples")

    def run(self):
        if self.recording is None:
            self.request_permission()

        period = 1.0 / self.rate_hz
        rows = self.recording.to_dict(orient="records")
        log.info("Replaying %d samples from %s at %.1f Hz", len(rows), self.csv_path, self.rate_hz)

        while not self.stop_event.is_set():
            for reading in rows:
                if self.stop_event.wait(period):
                    break
                self.callback(reading)
            if not self.loop_forever:
                break

        log.info("Replay of %s finished.", self.csv_path)


class CaptureController:
    """
    Start/stop surface for sensor capture.

    start() asks the source for permission, then starts it. Calling start()
    again while capture is running does nothing, so there is never more than
    one source feeding the pipeline.

    Parameters:
        pipeline : InferencePipeline receiving the readings
        source_factory : callable(callback, status_callback) -> SampleSource
    """

    def __init__(self, pipeline, source_factory):
        self.pipeline = pipeline
        self.source_factory = source_factory
        self.source = None
        self._loop = None
        self._starting = False

    @property
    def active(self) -> bool:
        return self.source is not None and self.source.is_alive()

    async def start(self) -> bool:
        if self.active or self._starting:
            log.info("Capture already running.")
            return True

        self._starting = True
        self._loop = asyncio.get_running_loop()
        try:
            source = self.source_factory(self._on_reading, self._on_status)
            await self._loop.run_in_executor(None, source.request_permission)
        except PermissionDeniedError as e:
            log.warning("Sensor permission denied: %s", e)
            self.pipeline.notify(f"Sensor access denied: {e}")
            return False
        except (OSError, ValueError, TypeError) as e:
            log.error("Could not set up sensor source: %s", e, exc_info=True)
            self.pipeline.notify(f"Sensor access denied: {e}")
            return False
        finally:
            self._starting = False

        # Fresh session: do not mix samples from a previous capture
        self.pipeline.state.buffer.reset()
        self.source = source
        source.start()
        self.pipeline.notify("Capturing sensor data... (hold the phone and walk around)")
        return True

    def stop(self) -> None:
        if self.active:
            log.info("Stopping sensor capture...")
            self.source.stop()

    # Called from the source thread: hand everything over to the event loop

    def _on_reading(self, reading) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.pipeline.push_sample, reading)

    def _on_status(self, text: str) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.pipeline.notify, text)
