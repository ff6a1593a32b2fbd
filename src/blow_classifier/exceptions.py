"""
Error conditions raised by the classifier pipeline
"""


class ModelNotReadyError(RuntimeError):
    """Prediction or saving requested before a model was trained or loaded."""


class TrainingInProgressError(RuntimeError):
    """A training run is already in flight on this classifier."""


class InsufficientSamplesError(ValueError):
    """One of the two classes has no samples, so a binary model cannot be trained."""


class ModelNotFoundError(LookupError):
    """No stored model blob exists under the requested name."""
