import logging

import numpy as np

from blow_classifier.config import N_FRAMES, N_MELS
from blow_classifier.exceptions import InsufficientSamplesError
from blow_classifier.labels import Label

logger = logging.getLogger(__name__)


class TrainingSet:
    """
    Labeled spectrograms collected for the blow / not-blow model.

    Samples are kept per label in insertion order. Shuffling only happens
    when training tensors are assembled, so the stored corpus is never
    reordered.
    """

    def __init__(self, seed=None):
        self._samples = {label: [] for label in Label}
        self._rng = np.random.default_rng(seed)

    def add_sample(self, spectrogram, label):
        """
        Store a normalized spectrogram under a label.

        Returns False when extraction produced nothing (None or empty), which
        is an expected outcome for silent or too-short clips. An unknown
        label or a wrongly shaped matrix raises ValueError.
        """
        label = Label.parse(label)

        if spectrogram is None:
            return False
        spectrogram = np.asarray(spectrogram, dtype=np.float32)
        if spectrogram.size == 0:
            return False
        if spectrogram.shape != (N_FRAMES, N_MELS):
            raise ValueError(
                f"Expected spectrogram of shape {(N_FRAMES, N_MELS)}, got {spectrogram.shape}"
            )

        self._samples[label].append(spectrogram.copy())
        logger.info(f"Added {label.value} sample. Total: {len(self._samples[label])}")
        return True

    def counts(self):
        blow = len(self._samples[Label.BLOW])
        not_blow = len(self._samples[Label.NOT_BLOW])
        return {"blow": blow, "not_blow": not_blow, "total": blow + not_blow}

    def samples(self, label):
        return tuple(self._samples[Label.parse(label)])

    def clear(self):
        for label in Label:
            self._samples[label] = []
        logger.info("Training data cleared")

    def __len__(self):
        return self.counts()["total"]

    def to_training_tensors(self):
        """
        Assemble shuffled training arrays.

        Blow samples come first, then not_blow, each with its one-hot row;
        one random permutation is then applied to both arrays so every
        feature keeps its label.

        Returns:
            X: float32 array (N, N_FRAMES, N_MELS, 1)
            y: float32 array (N, 2)
        """
        missing = [label.value for label in Label if not self._samples[label]]
        if missing:
            raise InsufficientSamplesError(
                f"Need both blow and not_blow samples (no samples for: {', '.join(missing)})"
            )

        features = []
        labels = []
        for label in (Label.BLOW, Label.NOT_BLOW):
            for spectrogram in self._samples[label]:
                features.append(spectrogram)
                labels.append(label.one_hot)

        # Generator.permutation is a Fisher-Yates shuffle
        order = self._rng.permutation(len(features))

        x = np.stack(features)[order][..., np.newaxis].astype(np.float32)
        y = np.stack(labels)[order].astype(np.float32)

        logger.debug(f"Training tensors assembled: X {x.shape}, y {y.shape}")
        return x, y
