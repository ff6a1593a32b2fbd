"""
Named storage for trained models

A stored model is an opaque blob: the bytes of a native Keras ``.keras``
archive, so architecture, weights and optimizer state survive a round trip.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import tensorflow as tf

from blow_classifier.config import MODEL_FILE_SUFFIX
from blow_classifier.exceptions import ModelNotFoundError

logger = logging.getLogger(__name__)


def serialize_model(model) -> bytes:
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "model" + MODEL_FILE_SUFFIX)
        model.save(path)
        with open(path, 'rb') as f:
            return f.read()


def deserialize_model(blob: bytes):
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "model" + MODEL_FILE_SUFFIX)
        with open(path, 'wb') as f:
            f.write(blob)
        return tf.keras.models.load_model(path)


class ModelStore(ABC):
    """
    Interface for anything that can keep model blobs by name.
    Knows nothing about Keras; it only moves bytes.
    """

    @abstractmethod
    def save(self, name: str, blob: bytes) -> None:
        pass

    @abstractmethod
    def load(self, name: str) -> bytes:
        """Return the blob stored under name or raise ModelNotFoundError."""


class InMemoryModelStore(ModelStore):
    """Keeps blobs in a dict; lives as long as the process."""

    def __init__(self):
        self._blobs = {}

    def save(self, name: str, blob: bytes) -> None:
        self._blobs[name] = bytes(blob)

    def load(self, name: str) -> bytes:
        try:
            return self._blobs[name]
        except KeyError:
            raise ModelNotFoundError(f"No model stored as '{name}'") from None

    def __contains__(self, name):
        return name in self._blobs


class DirectoryModelStore(ModelStore):
    """
    One ``<name>.keras`` file per model under a root directory
    """

    def __init__(self, root):
        self.root = Path(root)

    def _path_for(self, name: str) -> Path:
        if not name or os.sep in name or (os.altsep and os.altsep in name) or name in (".", ".."):
            raise ValueError(f"Invalid model name: {name!r}")
        return self.root / f"{name}{MODEL_FILE_SUFFIX}"

    def save(self, name: str, blob: bytes) -> None:
        path = self._path_for(name)
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(blob)
        logger.info(f"Model blob written to {path} ({len(blob) / 1024:.1f} KB)")

    def load(self, name: str) -> bytes:
        path = self._path_for(name)
        if not path.exists():
            raise ModelNotFoundError(f"Model file not found: {path}")
        return path.read_bytes()

    def __contains__(self, name):
        return self._path_for(name).exists()
