"""
Inference pipeline: accelerometer samples in, activity + intensity level out.

Each incoming sample is pushed into the sliding window. Once the window is
full, and at most once per `rate_limit_ms`, the window is snapshotted and run
through features -> standardization -> classifier -> arg-max -> intensity,
and the result is sent to the sink.

Everything here runs on one asyncio event loop. The classifier and the asset
fetches run in the loop's default executor and are awaited; the PREDICTING
state keeps a second inference from starting while one is in flight.
"""

import asyncio
import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from activity_meter import data_loader
from activity_meter.config import PipelineConfig
from activity_meter.data_loader import Assets
from activity_meter.errors import (
    DimensionMismatchError,
    InvalidWindowError,
    MissingScalerError,
    PredictionRuntimeError,
)
from activity_meter.features import extract_features, features_as_dict
from activity_meter.intensity import level_for_label
from activity_meter.model import decide, predict_distribution
from activity_meter.preprocessing import standardize
from activity_meter.windowing import Sample, SampleBuffer

log = logging.getLogger("activity_meter.pipeline")


class PipelineStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ASSETS_LOADING = "assets_loading"
    READY = "ready"
    PREDICTING = "predicting"
    ASSETS_FAILED = "assets_failed"


@dataclass(frozen=True)
class PredictionResult:
    label: str
    confidence: float
    level: int

    @property
    def percent(self) -> int:
        """Confidence as a 0-100 integer percentage."""
        # halves round up
        return int(math.floor(self.confidence * 100 + 0.5))


class PipelineState:
    """
    Mutable state owned by one pipeline: the window, the last inference
    time, and the loaded assets. Only the pipeline itself mutates it.
    """

    def __init__(self, window_size: int):
        self.status = PipelineStatus.UNINITIALIZED
        self.buffer = SampleBuffer(window_size)
        self.last_inference_at: Optional[float] = None
        self.last_notice_at: Optional[float] = None
        self.assets: Optional[Assets] = None

    @property
    def assets_loaded(self) -> bool:
        return self.assets is not None

    def __repr__(self) -> str:
        return f"PipelineState(status={self.status.value}, buffer={self.buffer!r})"


class InferencePipeline:
    """
    Parameters:
        sink : object with status(text) and prediction(result)
        config : PipelineConfig, defaults from constants.py
        clock : callable returning seconds (monotonic), injectable for tests
        load_model / load_scaler / load_labels : asset fetchers, called as
            fetcher(source, timeout) in the default executor
    """

    def __init__(
        self,
        sink,
        config: Optional[PipelineConfig] = None,
        clock=time.monotonic,
        load_model=data_loader.load_model,
        load_scaler=data_loader.load_scaler,
        load_labels=data_loader.load_labels,
    ):
        self.config = (config or PipelineConfig()).validate()
        self.sink = sink
        self._clock = clock
        self._load_model = load_model
        self._load_scaler = load_scaler
        self._load_labels = load_labels

        self.state = PipelineState(self.config.window_size)
        self._inflight: Optional[asyncio.Task] = None

        # counters, handy for the CLI summary and for tests
        self.inference_count = 0
        self.failure_count = 0

    @property
    def status(self) -> PipelineStatus:
        return self.state.status

    # Asset loading

    async def load_assets(self) -> bool:
        """
        Fetch classifier, scaler and labels concurrently.

        Returns True once the pipeline is READY. On failure the pipeline goes to
        ASSETS_FAILED, the sink gets a status message, and calling this again
        retries. Never raises.
        """
        state = self.state
        if state.status not in (PipelineStatus.UNINITIALIZED, PipelineStatus.ASSETS_FAILED):
            log.debug("load_assets ignored in state %s", state.status.value)
            return state.assets_loaded

        state.status = PipelineStatus.ASSETS_LOADING
        self.notify("Loading model...")

        cfg = self.config
        loop = asyncio.get_running_loop()
        try:
            model, scaler, labels = await asyncio.gather(
                loop.run_in_executor(None, self._load_model, cfg.model_path, cfg.fetch_timeout_s),
                loop.run_in_executor(None, self._load_scaler, cfg.scaler_path, cfg.fetch_timeout_s),
                loop.run_in_executor(None, self._load_labels, cfg.labels_path, cfg.fetch_timeout_s),
            )
        except Exception as e:
            log.error("Asset loading failed: %s", e, exc_info=True)
            state.status = PipelineStatus.ASSETS_FAILED
            self.notify(f"Failed to load model or preprocessing parameters: {e}")
            return False

        state.assets = Assets(model=model, scaler=scaler, labels=tuple(labels))
        state.status = PipelineStatus.READY
        log.info("Assets loaded: %d labels %s", len(labels), list(labels))
        self.notify("Model ready.")
        return True

    # Sample path

    def push_sample(self, reading) -> Optional[asyncio.Task]:
        """
        Accept one raw reading ({x, y, z} mapping, Sample, or None).

        Never blocks. Returns the scheduled inference task if this sample
        started one, otherwise None. Must be called on the event loop.
        """
        sample = reading if isinstance(reading, Sample) else Sample.from_reading(reading)
        state = self.state
        state.buffer.push(sample)

        if not state.buffer.is_full():
            return None

        now = self._clock()

        if not state.assets_loaded:
            self._notice_not_ready(now)
            return None

        if state.status is PipelineStatus.PREDICTING:
            # one inference at a time
            return None

        if state.last_inference_at is not None:
            elapsed_ms = (now - state.last_inference_at) * 1000.0
            if elapsed_ms < self.config.rate_limit_ms:
                return None

        # Snapshot before scheduling: later pushes never reach this inference
        window = state.buffer.snapshot()
        state.last_inference_at = now
        state.status = PipelineStatus.PREDICTING

        task = asyncio.get_running_loop().create_task(self._predict(window))
        self._inflight = task
        return task

    async def on_sample(self, reading) -> Optional[PredictionResult]:
        """Push a reading and wait for the inference it triggered, if any."""
        task = self.push_sample(reading)
        if task is None:
            return None
        return await task

    async def drain(self) -> None:
        """Wait for the in-flight inference (if any) to finish."""
        task = self._inflight
        if task is not None and not task.done():
            await task

    def _notice_not_ready(self, now: float) -> None:
        last = self.state.last_notice_at
        if last is not None and (now - last) * 1000.0 < self.config.not_ready_notice_ms:
            return
        self.state.last_notice_at = now
        log.info("Window full but model not loaded (%s), skipping inference", self.status.value)
        self.notify("Model not loaded, skipping inference...")

    async def _predict(self, window) -> Optional[PredictionResult]:
        assets = self.state.assets
        try:
            features = extract_features(window)
            scaled = standardize(features, assets.scaler)

            loop = asyncio.get_running_loop()
            probs = await loop.run_in_executor(None, predict_distribution, assets.model, scaled)

            label, confidence = decide(probs, assets.labels)
            result = PredictionResult(
                label=label, confidence=confidence, level=level_for_label(label)
            )
        except PredictionRuntimeError as e:
            self.failure_count += 1
            log.warning("Prediction failed: %s", e)
            self.notify("An error occurred during inference.")
            return None
        except (InvalidWindowError, DimensionMismatchError, MissingScalerError) as e:
            # wiring defect, skip this cycle
            self.failure_count += 1
            log.error("Inference skipped: %s", e, exc_info=True)
            self.notify(f"Inference skipped: {e}")
            return None
        except Exception as e:
            self.failure_count += 1
            log.exception("Unexpected error during inference")
            self.notify(f"An error occurred during inference: {e}")
            return None
        finally:
            self.state.status = PipelineStatus.READY
            self._inflight = None

        self.inference_count += 1
        log.debug("features=%s -> %s", features_as_dict(features), result)
        self._emit_prediction(result)
        return result

    # Sink

    def notify(self, text: str) -> None:
        """Send a status line to the sink. Sink errors are logged, never raised."""
        try:
            self.sink.status(text)
        except Exception:
            log.exception("Sink failed to show status %r", text)

    def _emit_prediction(self, result: PredictionResult) -> None:
        try:
            self.sink.prediction(result)
        except Exception:
            log.exception("Sink failed to show prediction %r", result)
