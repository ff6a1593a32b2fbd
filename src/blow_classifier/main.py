"""
Command line interface for the blow classifier
Collect labeled clips and train, run live detection, or inspect a saved model
"""

import argparse
import logging
import sys
import time

from .audio_capture import AudioCapture
from .config import (
    SAMPLE_RATE, DEFAULT_EPOCHS, DEFAULT_BATCH_SIZE, MIN_SAMPLES_PER_CLASS,
    MODEL_NAME, MODEL_DIR, LOG_LEVEL, LOG_FORMAT
)
from .data.training_set import TrainingSet
from .engine.collector import SampleCollector
from .engine.detector import BlowDetector
from .features.feature_extraction import FeatureExtractor
from .labels import Label
from .model.callbacks import CallbackObserver
from .model.classifier import BlowClassifier
from .model.store import DirectoryModelStore

logger = logging.getLogger(__name__)


class BlowClassifierApp:
    """
    Wires capture, feature extraction, training data and the classifier together
    """

    def __init__(self, model_dir=MODEL_DIR, sample_rate=SAMPLE_RATE):
        self.capture = AudioCapture(sample_rate=sample_rate)
        self.extractor = FeatureExtractor(sample_rate)
        self.training_set = TrainingSet()
        self.classifier = BlowClassifier(store=DirectoryModelStore(model_dir))

    # -------------------------------------------------------------------
    # Collect + train
    # -------------------------------------------------------------------
    def train_model(self, samples_per_class, epochs=DEFAULT_EPOCHS,
                    batch_size=DEFAULT_BATCH_SIZE, model_name=MODEL_NAME):
        if not self.capture.is_available():
            print("Microphone access is not available. Check the input device.")
            return None

        collector = SampleCollector(self.capture, self.extractor, self.training_set)

        def report(added, counts):
            print(f"  blow: {counts['blow']}  not_blow: {counts['not_blow']}", end="\r")

        for label in Label:
            input(f"\nPress Enter, then make '{label.value}' sounds "
                  f"({samples_per_class} clips)...")
            collector.collect(label, samples_per_class, on_sample=report)
        print()

        counts = self.training_set.counts()
        if counts['blow'] < MIN_SAMPLES_PER_CLASS or counts['not_blow'] < MIN_SAMPLES_PER_CLASS:
            print(f"Please collect at least {MIN_SAMPLES_PER_CLASS} samples for each class "
                  f"(have blow={counts['blow']}, not_blow={counts['not_blow']})")
            return None

        print(f"Training model: {epochs} epochs, batch size {batch_size}...")

        def on_epoch_end(epoch, logs):
            print(
                f"Epoch {epoch + 1}/{epochs} - "
                f"loss: {logs['loss']:.4f}, acc: {logs['accuracy'] * 100:.2f}%, "
                f"val_loss: {logs['val_loss']:.4f}, val_acc: {logs['val_accuracy'] * 100:.2f}%"
            )

        history = self.classifier.train(
            self.training_set,
            epochs=epochs,
            batch_size=batch_size,
            observer=CallbackObserver(
                on_epoch_end=on_epoch_end,
                on_train_end=lambda: print("Training completed!")
            )
        )

        if self.classifier.save(model_name):
            print(f"Model saved as {model_name}")
        else:
            print("Saving the model failed, see the log for details")

        return history

    # -------------------------------------------------------------------
    # Live detection
    # -------------------------------------------------------------------
    def run_detector(self, model_name=MODEL_NAME):
        if not self.classifier.load(model_name):
            print("No saved model found. Please train a model first.")
            return False

        def show(result):
            print(
                f"{result['label'].value.upper():<9} "
                f"blow {result['blow'] * 100:5.1f}%  not_blow {result['not_blow'] * 100:5.1f}%"
            )

        detector = BlowDetector(self.capture, self.extractor, self.classifier, on_prediction=show)

        try:
            detector.start()
            print("[*] Listening... press Ctrl+C to stop")
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\n[*] Stopping...")
        finally:
            detector.stop()

        return True

    # -------------------------------------------------------------------
    # Model summary
    # -------------------------------------------------------------------
    def show_summary(self, model_name=MODEL_NAME):
        if not self.classifier.load(model_name):
            print(f"No saved model '{model_name}', showing a freshly built one")
            self.classifier.build_model()

        summary = self.classifier.summary()
        print(f"Layers: {summary['layers']}")
        print(f"Trainable params: {summary['trainable_params']}")
        print(f"Non-trainable params: {summary['non_trainable_params']}")
        return summary


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------
def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Blow / not-blow audio classifier"
    )
    parser.add_argument(
        "command",
        choices=["train", "detect", "summary"],
        help="Command to execute",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=20,
        help="Clips to record per class when training (default: 20)",
    )
    parser.add_argument(
        "--epochs",
        type=int,
        default=DEFAULT_EPOCHS,
        help=f"Training epochs (default: {DEFAULT_EPOCHS})",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Training batch size (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--model-name",
        default=MODEL_NAME,
        help=f"Name the model is saved/loaded under (default: {MODEL_NAME})",
    )
    parser.add_argument(
        "--model-dir",
        default=MODEL_DIR,
        help=f"Directory holding saved models (default: {MODEL_DIR})",
    )
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=SAMPLE_RATE,
        help=f"Capture sample rate in Hz (default: {SAMPLE_RATE})",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help=f"Logging level (default: {LOG_LEVEL})",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    app = BlowClassifierApp(model_dir=args.model_dir, sample_rate=args.sample_rate)

    if args.command == "train":
        ok = app.train_model(args.samples, args.epochs, args.batch_size, args.model_name) is not None
    elif args.command == "detect":
        ok = app.run_detector(args.model_name)
    else:
        app.show_summary(args.model_name)
        ok = True

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
