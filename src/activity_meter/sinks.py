"""
Sinks receive what the pipeline wants to show:
- status(text): loading / waiting / error messages
- prediction(result): label, confidence and intensity level

Both calls are fire-and-forget.
"""

from typing import List

from activity_meter.constants import INTENSITY_LEVELS

DOT_ON = "●"
DOT_OFF = "○"


def indicator_states(level: int) -> List[bool]:
    """Which of the INTENSITY_LEVELS dots is lit: exactly the one matching `level`."""
    return [i == level for i in range(1, INTENSITY_LEVELS + 1)]


def format_result(result) -> str:
    return f"{result.label} ({result.percent}%)"


class BaseSink:
    def status(self, text: str) -> None:
        pass

    def prediction(self, result) -> None:
        pass


class ConsoleSink(BaseSink):
    """Print status lines and predictions to the terminal."""

    def status(self, text: str) -> None:
        print(f"[status] {text}")

    def prediction(self, result) -> None:
        dots = " ".join(DOT_ON if on else DOT_OFF for on in indicator_states(result.level))
        print(f"{format_result(result):<24} {dots}  (level {result.level})")
