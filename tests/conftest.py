"""Pytest configuration and fixtures for the blow classifier tests."""

import pytest
import numpy as np
import sys
import os

# Add src directory to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from blow_classifier.config import SAMPLE_RATE, N_FRAMES, N_MELS


def make_tone(frequency=440.0, duration=1.0, sample_rate=SAMPLE_RATE, amplitude=0.5):
    samples = int(sample_rate * duration)
    t = np.arange(samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def make_spectrogram(offset=0.0, seed=0):
    rng = np.random.default_rng(seed)
    return (rng.standard_normal((N_FRAMES, N_MELS)) + offset).astype(np.float32)


@pytest.fixture
def sample_audio_data():
    """Fixture providing one second of a 440 Hz tone and its sample rate."""
    return make_tone(), SAMPLE_RATE


@pytest.fixture
def noise_audio_data():
    """Fixture providing one second of white noise, a rough stand-in for a blow."""
    rng = np.random.default_rng(1)
    audio = rng.uniform(-0.3, 0.3, SAMPLE_RATE).astype(np.float32)
    return audio, SAMPLE_RATE


@pytest.fixture
def sample_spectrogram():
    """Fixture providing a normalized-looking spectrogram."""
    return make_spectrogram()
