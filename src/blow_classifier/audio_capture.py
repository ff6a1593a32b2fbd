"""
Audio capture module for the blow classifier
Records fixed-duration mono clips from the default input device
"""

import logging

import numpy as np
import sounddevice as sd

from .config import SAMPLE_RATE, CHANNELS, CAPTURE_DURATION_SECONDS

logger = logging.getLogger(__name__)


class AudioCapture:
    """
    Blocking clip recorder. Each call to capture_sample returns a fresh
    float32 array of sample_rate * duration samples in [-1, 1].
    """

    def __init__(self, sample_rate=SAMPLE_RATE, duration=CAPTURE_DURATION_SECONDS):
        self.sample_rate = sample_rate
        self.channels = CHANNELS
        self.duration = duration

    def is_available(self):
        """
        Check that an input device exists and accepts our settings
        """
        try:
            sd.check_input_settings(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype='float32'
            )
            return True
        except Exception as e:
            logger.error(f"Microphone not available: {e}")
            return False

    def capture_sample(self, duration=None):
        """
        Record one clip and return it as a 1-D float32 array
        """
        duration = self.duration if duration is None else duration
        num_samples = int(self.sample_rate * duration)

        recording = sd.rec(
            num_samples,
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype='float32'
        )
        sd.wait()

        # Convert to mono if needed and flatten
        if recording.ndim > 1 and recording.shape[1] > 1:
            audio = np.mean(recording, axis=1)
        else:
            audio = recording.reshape(-1)

        return audio.astype(np.float32)
