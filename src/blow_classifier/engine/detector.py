"""
Continuous blow detection
Orchestrates audio capture, feature extraction and model inference on a background thread
"""

import logging
import threading
import time
from collections import deque

import numpy as np

from blow_classifier.config import INFERENCE_INTERVAL_SECONDS
from blow_classifier.exceptions import ModelNotReadyError

logger = logging.getLogger(__name__)


class BlowDetector:
    """
    Runs capture -> extract -> predict in a loop and reports each prediction.

    The detector is the only caller of the classifier while it runs; do not
    train the same classifier concurrently.
    """

    def __init__(self, capture, extractor, classifier, on_prediction=None,
                 interval=INFERENCE_INTERVAL_SECONDS):
        self.capture = capture
        self.extractor = extractor
        self.classifier = classifier
        self.on_prediction = on_prediction
        self.interval = interval

        # Performance monitoring
        self.inference_times = deque(maxlen=100)
        self.total_inferences = 0
        self.skipped_windows = 0
        self.last_prediction = None

        # Control flags
        self._stop_event = threading.Event()
        self.detection_thread = None

    @property
    def is_running(self):
        return self.detection_thread is not None and self.detection_thread.is_alive()

    def start(self):
        """
        Start the detection loop in a daemon thread
        """
        if self.is_running:
            logger.warning("Detector already running")
            return

        if not self.classifier.is_ready:
            raise ModelNotReadyError("Train or load a model before starting detection")

        self._stop_event.clear()
        self.detection_thread = threading.Thread(target=self._detection_loop, daemon=True)
        self.detection_thread.start()
        logger.info("Real-time inference started...")

    def stop(self):
        """
        Stop the detection loop gracefully
        """
        if not self.is_running:
            return

        self._stop_event.set()
        self.detection_thread.join(timeout=self.interval + self.capture.duration + 1.0)
        logger.info("Inference stopped")

    def process_window(self, samples):
        """
        Classify one captured clip

        Returns:
            the prediction dict, or None when the clip gave no features
        """
        start_time = time.perf_counter()

        features = self.extractor.extract_features(samples, self.capture.sample_rate)
        result = self.classifier.predict(features)

        self.inference_times.append((time.perf_counter() - start_time) * 1000)

        if result is None:
            self.skipped_windows += 1
            logger.debug("Clip produced no features, skipped")
            return None

        self.total_inferences += 1
        self.last_prediction = result

        if self.on_prediction:
            self.on_prediction(result)

        return result

    def _detection_loop(self):
        while not self._stop_event.is_set():
            started = time.monotonic()

            try:
                audio = self.capture.capture_sample()
                self.process_window(audio)
            except Exception as e:
                logger.error(f"Inference error: {e}")

            remaining = self.interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop_event.wait(remaining)

    def get_status(self):
        """
        Get current detector status for monitoring
        """
        avg_latency = float(np.mean(self.inference_times)) if self.inference_times else 0.0

        return {
            "is_running": self.is_running,
            "total_inferences": self.total_inferences,
            "skipped_windows": self.skipped_windows,
            "average_latency_ms": avg_latency,
            "last_prediction": self.last_prediction,
        }
