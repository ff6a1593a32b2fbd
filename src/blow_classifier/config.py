"""
Configuration constants for the blow / not-blow audio classifier
"""

import os

# Audio Configuration
SAMPLE_RATE = 22050  # Default capture rate, matches the browser AudioContext request
CHANNELS = 1  # Mono
CAPTURE_DURATION_SECONDS = 1.0  # One clip per labeled sample / inference step

# Feature Extraction (fixed, the model input shape depends on them)
FFT_SIZE = 2048  # Window length per frame
HOP_LENGTH = 512  # Stride between windows
N_MELS = 128  # Mel bands per frame
N_FRAMES = 32  # Frames kept per spectrogram
LOG_FLOOR = 1e-10  # log(max(x, LOG_FLOOR))
STD_EPSILON = 1e-8  # (x - mean) / (std + STD_EPSILON)
N_MFCC = 13

# Model Configuration
MODEL_INPUT_SHAPE = (N_FRAMES, N_MELS, 1)  # Time x Mel x Channel
NUM_CLASSES = 2
CLASS_NAMES = ["blow", "not_blow"]  # Output index order

# Training
LEARNING_RATE = 0.001
DEFAULT_EPOCHS = 50
DEFAULT_BATCH_SIZE = 32
VALIDATION_SPLIT = 0.2  # Tail of the shuffled set held out by Keras
MIN_SAMPLES_PER_CLASS = 10

# Collection / detection loops
COLLECT_INTERVAL_SECONDS = 1.0
INFERENCE_INTERVAL_SECONDS = 0.5

# Model storage
MODEL_NAME = "blow-classifier"
MODEL_DIR = os.path.join("models", "saved_models")
MODEL_FILE_SUFFIX = ".keras"

# Logging
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
