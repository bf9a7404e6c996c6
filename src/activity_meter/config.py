"""
Runtime configuration for one pipeline instance.

Defaults come from constants.py; the CLI overrides them from its arguments.
"""

from dataclasses import dataclass

from activity_meter.constants import (
    DEFAULT_LABELS_PATH,
    DEFAULT_MODEL_PATH,
    DEFAULT_SCALER_PATH,
    FETCH_TIMEOUT_S,
    NOT_READY_NOTICE_MS,
    RATE_LIMIT_MS,
    WINDOW_SIZE,
)


@dataclass
class PipelineConfig:
    window_size: int = WINDOW_SIZE
    rate_limit_ms: float = RATE_LIMIT_MS
    not_ready_notice_ms: float = NOT_READY_NOTICE_MS
    model_path: str = DEFAULT_MODEL_PATH
    scaler_path: str = DEFAULT_SCALER_PATH
    labels_path: str = DEFAULT_LABELS_PATH
    fetch_timeout_s: float = FETCH_TIMEOUT_S

    def validate(self) -> "PipelineConfig":
        if self.window_size <= 0:
            raise ValueError(f"window_size must be > 0, got {self.window_size}")
        if self.rate_limit_ms < 0:
            raise ValueError(f"rate_limit_ms must be >= 0, got {self.rate_limit_ms}")
        if self.not_ready_notice_ms < 0:
            raise ValueError(
                f"not_ready_notice_ms must be >= 0, got {self.not_ready_notice_ms}"
            )
        if self.fetch_timeout_s <= 0:
            raise ValueError(f"fetch_timeout_s must be > 0, got {self.fetch_timeout_s}")
        return self
