"""
Blow Classifier

Learns to tell a breath blown at the microphone apart from every other
sound, from a few dozen clips labeled by the user.

Components:
- Feature extraction (fixed-shape, globally normalized log-mel spectrograms)
- Training set with shuffled tensor assembly
- Small CNN with single-flight training, prediction and named model storage
- Sample collection and live detection loops (microphone via sounddevice)
"""

from .config import *
from .labels import Label, decide_label
from .exceptions import (
    ModelNotReadyError, TrainingInProgressError,
    InsufficientSamplesError, ModelNotFoundError
)
from .features.feature_extraction import FeatureExtractor
from .data.training_set import TrainingSet
from .model.classifier import BlowClassifier, ClassifierState
from .model.callbacks import TrainingObserver, CallbackObserver, HistoryObserver
from .model.store import ModelStore, InMemoryModelStore, DirectoryModelStore

__version__ = "1.0.0"
