import logging
import time

from blow_classifier.config import COLLECT_INTERVAL_SECONDS
from blow_classifier.labels import Label

logger = logging.getLogger(__name__)


class SampleCollector:
    """
    Captures clips, extracts their spectrograms and files them under a label.
    Clips that yield no features are dropped, not retried.
    """

    def __init__(self, capture, extractor, training_set):
        self.capture = capture
        self.extractor = extractor
        self.training_set = training_set

    def collect_one(self, label):
        label = Label.parse(label)

        audio = self.capture.capture_sample()
        features = self.extractor.extract_features(audio, self.capture.sample_rate)

        added = self.training_set.add_sample(features, label)
        if not added:
            logger.debug(f"Discarded {label.value} clip: no features extracted")
        return added

    def collect(self, label, count, interval=COLLECT_INTERVAL_SECONDS, on_sample=None):
        """
        Record count clips, one every interval seconds

        Args:
            label: Label (or its string value) for every clip
            count: number of clips to capture
            interval: target spacing between capture starts
            on_sample: optional callable(added, counts) after each clip

        Returns:
            int: how many clips were added to the training set
        """
        label = Label.parse(label)
        logger.info(f"Recording {count} {label.value} samples...")

        added = 0
        for i in range(count):
            started = time.monotonic()

            if self.collect_one(label):
                added += 1
            if on_sample:
                on_sample(added, self.training_set.counts())

            remaining = interval - (time.monotonic() - started)
            if remaining > 0 and i < count - 1:
                time.sleep(remaining)

        logger.info(f"Recording stopped: {added}/{count} {label.value} clips kept")
        return added
