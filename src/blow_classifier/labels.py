"""
Label vocabulary for the binary blow classifier
"""

from enum import Enum

import numpy as np


class Label(str, Enum):
    """The two classes the model distinguishes. Order matches the model output."""

    BLOW = "blow"
    NOT_BLOW = "not_blow"

    @property
    def index(self) -> int:
        return 0 if self is Label.BLOW else 1

    @property
    def one_hot(self) -> np.ndarray:
        vector = np.zeros(2, dtype=np.float32)
        vector[self.index] = 1.0
        return vector

    @classmethod
    def parse(cls, value) -> "Label":
        """Accept a Label or its string value; anything else raises ValueError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown label {value!r}, expected one of {[m.value for m in cls]}"
            ) from None


def decide_label(blow_probability: float, not_blow_probability: float) -> Label:
    # Strict comparison: a tie resolves to NOT_BLOW
    if blow_probability > not_blow_probability:
        return Label.BLOW
    return Label.NOT_BLOW
