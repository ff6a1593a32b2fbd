"""
Training progress observers and the Keras callback that feeds them
"""

import logging

import tensorflow as tf

logger = logging.getLogger(__name__)

EPOCH_METRICS = ("loss", "accuracy", "val_loss", "val_accuracy")


class TrainingObserver:
    """
    Receives training events. BlowClassifier.train calls on_epoch_end after
    every epoch and on_train_end exactly once per run, whether it succeeded
    or failed.
    """

    def on_epoch_end(self, epoch, logs):
        pass

    def on_train_end(self):
        pass


class CallbackObserver(TrainingObserver):
    """Adapts plain callables to the observer interface."""

    def __init__(self, on_epoch_end=None, on_train_end=None):
        self._on_epoch_end = on_epoch_end
        self._on_train_end = on_train_end

    def on_epoch_end(self, epoch, logs):
        if self._on_epoch_end:
            self._on_epoch_end(epoch, logs)

    def on_train_end(self):
        if self._on_train_end:
            self._on_train_end()


class HistoryObserver(TrainingObserver):
    """
    Accumulates per-epoch metrics, e.g. for plotting a training curve
    """

    def __init__(self):
        self.history = {key: [] for key in EPOCH_METRICS}
        self.finished = False

    def on_epoch_end(self, epoch, logs):
        for key in EPOCH_METRICS:
            self.history[key].append(logs.get(key))

    def on_train_end(self):
        self.finished = True


class ObserverCallback(tf.keras.callbacks.Callback):
    """
    Forwards Keras epoch logs to a TrainingObserver.

    on_train_end is deliberately not forwarded: Keras skips it when fit()
    raises, so the classifier signals the end of the run itself.
    """

    def __init__(self, observer, epochs):
        super().__init__()
        self.observer = observer
        self.epochs = epochs

    def on_epoch_end(self, epoch, logs=None):
        logs = logs or {}
        metrics = {
            key: float(logs[key]) if logs.get(key) is not None else None
            for key in EPOCH_METRICS
        }

        summary = ", ".join(
            f"{key}: {value:.4f}" for key, value in metrics.items() if value is not None
        )
        logger.info(f"Epoch {epoch + 1}/{self.epochs} - {summary}")

        self.observer.on_epoch_end(epoch, metrics)
