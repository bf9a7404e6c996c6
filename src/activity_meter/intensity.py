"""
Map a predicted activity label to a coarse intensity level (1..5).

The rules assume a WISDM-style vocabulary (Sitting, Standing, Walking,
Upstairs, Downstairs, Jogging). Labels from another vocabulary fall
through to the default level 3.
"""

from typing import Optional

from activity_meter.constants import DEFAULT_LEVEL

# --- CONFIGURATION ---
# Checked in order, first match wins. Each rule: (match kind, words, level)
#   "contains" -> label contains one of the words
#   "equals"   -> label is one of the words
LEVEL_RULES = [
    ("contains", ("sit", "stand"), 1),
    ("equals", ("walking",), 3),
    ("equals", ("upstairs", "downstairs"), 3),
    ("contains", ("jogging", "running"), 5),
]


def _matches(kind: str, words, label: str) -> bool:
    if kind == "contains":
        return any(w in label for w in words)
    if kind == "equals":
        return label in words
    raise ValueError(f"Unknown match kind: {kind}")


def level_for_label(label: Optional[str]) -> int:
    """
    Takes the label from the model and returns its intensity level.
    Matching is case-insensitive; empty / unknown labels get DEFAULT_LEVEL.
    """
    if not label:
        return DEFAULT_LEVEL

    name = label.lower()
    for kind, words, level in LEVEL_RULES:
        if _matches(kind, words, name):
            return level

    return DEFAULT_LEVEL
