import logging
import threading
from contextlib import contextmanager
from enum import Enum

import numpy as np
import tensorflow as tf

from blow_classifier.config import (
    MODEL_INPUT_SHAPE, NUM_CLASSES, MODEL_NAME, MODEL_DIR,
    DEFAULT_EPOCHS, DEFAULT_BATCH_SIZE, VALIDATION_SPLIT
)
from blow_classifier.exceptions import (
    ModelNotFoundError, ModelNotReadyError, TrainingInProgressError
)
from blow_classifier.features.feature_extraction import to_model_input
from blow_classifier.labels import Label, decide_label
from blow_classifier.model.architecture import build_blow_cnn
from blow_classifier.model.callbacks import ObserverCallback, TrainingObserver
from blow_classifier.model.store import (
    DirectoryModelStore, serialize_model, deserialize_model
)

logger = logging.getLogger(__name__)


class ClassifierState(Enum):
    EMPTY = "empty"
    BUILT = "built"
    TRAINED = "trained"
    LOADED = "loaded"


@contextmanager
def training_tensors(training_set):
    """
    Assemble (X, y) for one fit() call and drop them on every exit path.
    Yields a list so the arrays can be released without the caller's help.
    """
    tensors = list(training_set.to_training_tensors())
    try:
        yield tensors
    finally:
        tensors.clear()
        logger.debug("Released training tensors")


class BlowClassifier:
    """
    Owns the CNN for blow / not-blow classification: builds it, trains it
    on a TrainingSet, predicts single spectrograms and saves/loads it
    through a ModelStore.

    Only one training run may be in flight per instance; a second call
    fails immediately instead of queuing.
    """

    def __init__(self, store=None):
        self.input_shape = MODEL_INPUT_SHAPE
        self.num_classes = NUM_CLASSES
        self.store = store if store is not None else DirectoryModelStore(MODEL_DIR)

        self.model = None
        self._state = ClassifierState.EMPTY

        # Busy flag for single-flight training, never waited on
        self._training_lock = threading.Lock()

    @property
    def state(self):
        return self._state

    @property
    def is_training(self):
        return self._training_lock.locked()

    @property
    def is_ready(self):
        return self.model is not None and self._state in (
            ClassifierState.TRAINED, ClassifierState.LOADED
        )

    def build_model(self):
        self.model = build_blow_cnn(self.input_shape, self.num_classes)
        self._state = ClassifierState.BUILT
        return self.model

    def train(self, training_set, epochs=DEFAULT_EPOCHS, batch_size=DEFAULT_BATCH_SIZE,
              observer=None):
        """
        Train (or retrain in place) on the samples of a TrainingSet.

        The last VALIDATION_SPLIT of the shuffled arrays is held out for
        validation. observer.on_epoch_end receives loss, accuracy, val_loss
        and val_accuracy after each epoch; observer.on_train_end is called
        once when the run is over, also when it failed. A call rejected
        because another run is in flight never reaches the observer, so
        it gets no on_train_end.

        Raises:
            TrainingInProgressError: another run is in flight on this instance
            InsufficientSamplesError: one of the classes has no samples

        Returns:
            the Keras History of the run
        """
        if not self._training_lock.acquire(blocking=False):
            raise TrainingInProgressError("Training already in progress")

        observer = observer if observer is not None else TrainingObserver()

        try:
            with training_tensors(training_set) as tensors:
                logger.info(f"Training data shape: {tensors[0].shape}")
                logger.info(f"Labels shape: {tensors[1].shape}")

                if self.model is None:
                    self.build_model()

                history = self.model.fit(
                    tensors[0], tensors[1],
                    epochs=epochs,
                    batch_size=batch_size,
                    validation_split=VALIDATION_SPLIT,
                    shuffle=True,
                    callbacks=[ObserverCallback(observer, epochs)],
                    verbose=0
                )

            self._state = ClassifierState.TRAINED
            logger.info("Model training finished.")
            return history

        finally:
            self._training_lock.release()
            observer.on_train_end()

    def predict(self, spectrogram):
        """
        Classify one normalized spectrogram.

        Returns:
            dict with 'blow' and 'not_blow' probabilities and the winning
            'label', or None when no spectrogram was extracted
        """
        if not self.is_ready:
            raise ModelNotReadyError("Model not trained or loaded")

        if spectrogram is None:
            return None

        model_input = tf.convert_to_tensor(to_model_input(spectrogram))
        probabilities = np.asarray(self.model(model_input, training=False))[0]

        blow = float(probabilities[Label.BLOW.index])
        not_blow = float(probabilities[Label.NOT_BLOW.index])

        return {
            'blow': blow,
            'not_blow': not_blow,
            'label': decide_label(blow, not_blow)
        }

    def save(self, name=MODEL_NAME):
        """
        Persist the current model under name. Returns False if the store failed.
        """
        if self.model is None:
            raise ModelNotReadyError("No model to save")

        try:
            self.store.save(name, serialize_model(self.model))
        except Exception as e:
            logger.error(f"Failed to save model '{name}': {e}")
            return False

        logger.info(f"Model saved as {name}")
        return True

    def load(self, name=MODEL_NAME):
        """
        Replace the current model with the one stored under name.
        A missing or unreadable blob is reported as False; the current
        model is kept in that case.
        """
        if self.is_training:
            raise TrainingInProgressError("Cannot load a model while training")

        try:
            model = deserialize_model(self.store.load(name))
        except ModelNotFoundError as e:
            logger.warning(f"No saved model found: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to load model '{name}': {e}")
            return False

        if (tuple(model.input_shape[1:]) != tuple(self.input_shape)
                or model.output_shape[-1] != self.num_classes):
            logger.error(
                f"Stored model '{name}' has input {model.input_shape} and output "
                f"{model.output_shape}, expected {(None, *self.input_shape)} -> "
                f"(None, {self.num_classes})"
            )
            return False

        self.model = model
        self._state = ClassifierState.LOADED
        logger.info(f"Model loaded from {name}")
        return True

    def summary(self):
        if self.model is None:
            return None

        trainable = sum(int(np.prod(w.shape)) for w in self.model.trainable_weights)
        non_trainable = sum(int(np.prod(w.shape)) for w in self.model.non_trainable_weights)

        return {
            'layers': len(self.model.layers),
            'trainable_params': trainable,
            'non_trainable_params': non_trainable
        }
