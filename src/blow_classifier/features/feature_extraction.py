"""
Feature extraction module for the blow classifier
Turns raw PCM clips into fixed-shape, normalized log-mel spectrograms
"""

import logging

import librosa
import numpy as np
from scipy import stats

from blow_classifier.config import (
    SAMPLE_RATE, FFT_SIZE, HOP_LENGTH, N_MELS, N_FRAMES, N_MFCC,
    LOG_FLOOR, STD_EPSILON
)

logger = logging.getLogger(__name__)

STATISTICAL_FEATURES = (
    "rms",
    "zcr",
    "energy",
    "spectral_centroid",
    "spectral_flatness",
    "spectral_rolloff",
    "spectral_kurtosis",
    "spectral_skewness",
)


def normalize_frames(frames, target_frames=N_FRAMES):
    """
    Bring a frame sequence to exactly target_frames rows.

    Longer sequences are down-sampled by picking rows floor(i * n / target);
    shorter ones are repeated cyclically from the start, the last cycle
    truncated to fit. A sequence that already has the target length is
    returned as is.
    """
    n = len(frames)
    if n == target_frames:
        return frames
    if n == 0:
        raise ValueError("Cannot normalize an empty frame sequence")

    frames = np.asarray(frames)
    if n > target_frames:
        indices = (np.arange(target_frames) * n) // target_frames
    else:
        indices = np.arange(target_frames) % n
    return frames[indices]


def normalize_spectrogram(spectrogram):
    """
    Log-scale then standardize with one mean/std over the whole matrix
    """
    log_spec = np.log(np.maximum(np.asarray(spectrogram, dtype=np.float64), LOG_FLOOR))

    mean = log_spec.mean()
    std = log_spec.std()

    return ((log_spec - mean) / (std + STD_EPSILON)).astype(np.float32)


def to_model_input(spectrogram):
    """Single-sample batch (1, N_FRAMES, N_MELS, 1), or None for None."""
    if spectrogram is None:
        return None

    spectrogram = np.asarray(spectrogram, dtype=np.float32)
    if spectrogram.shape != (N_FRAMES, N_MELS):
        raise ValueError(
            f"Expected spectrogram of shape {(N_FRAMES, N_MELS)}, got {spectrogram.shape}"
        )

    return spectrogram[np.newaxis, ..., np.newaxis]


def calculate_rms(samples):
    audio = np.asarray(samples, dtype=np.float64).ravel()
    if audio.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(audio ** 2)))


def calculate_zero_crossing_rate(samples):
    audio = np.asarray(samples, dtype=np.float64).ravel()
    if audio.size == 0:
        return 0.0
    non_negative = audio >= 0
    crossings = np.count_nonzero(non_negative[1:] != non_negative[:-1])
    return crossings / audio.size


class FeatureExtractor:
    """
    Extracts log-mel spectrograms shaped (N_FRAMES, N_MELS) for the CNN.
    Extraction is deterministic; identical clips give identical matrices.
    """

    def __init__(self, sample_rate=SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.n_fft = FFT_SIZE
        self.hop_length = HOP_LENGTH
        self.n_mels = N_MELS
        self.n_frames = N_FRAMES

        self.window = librosa.filters.get_window("hann", self.n_fft, fftbins=True)

        # Mel filterbanks keyed by sample rate
        self._mel_filterbanks = {}
        self._get_mel_filterbank(sample_rate)

        # Frames whose mel vector came out non-finite and were zeroed
        self.degenerate_frames = 0

        logger.info(
            f"Feature extractor initialized ({self.n_mels} mel bands, "
            f"{self.n_frames} frames, {sample_rate} Hz)"
        )

    def _get_mel_filterbank(self, sample_rate):
        if sample_rate not in self._mel_filterbanks:
            self._mel_filterbanks[sample_rate] = librosa.filters.mel(
                sr=sample_rate,
                n_fft=self.n_fft,
                n_mels=self.n_mels
            )
        return self._mel_filterbanks[sample_rate]

    def _prepare_audio(self, samples, sample_rate):
        if sample_rate is None:
            sample_rate = self.sample_rate
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        if samples is None:
            return None, sample_rate
        return np.asarray(samples, dtype=np.float32).ravel(), sample_rate

    def frame_count(self, num_samples):
        """Number of full windows that fit in num_samples."""
        if num_samples < self.n_fft:
            return 0
        return (num_samples - self.n_fft) // self.hop_length + 1

    def _mel_frames(self, frames, sample_rate):
        """
        Mel-band energies per frame, shape (len(frames), n_mels)
        """
        filterbank = self._get_mel_filterbank(sample_rate)

        with np.errstate(invalid="ignore", over="ignore"):
            magnitude = np.abs(np.fft.rfft(frames * self.window, n=self.n_fft, axis=1))
            mel = magnitude @ filterbank.T

        # A frame that produced no usable energies becomes a zero vector
        finite = np.all(np.isfinite(mel), axis=1)
        if not np.all(finite):
            bad = int(np.count_nonzero(~finite))
            mel[~finite] = 0.0
            self.degenerate_frames += bad
            logger.warning(
                f"Replaced {bad} degenerate mel frame(s) with zeros "
                f"(total so far: {self.degenerate_frames})"
            )

        return mel

    def extract_mel_spectrogram(self, samples, sample_rate=None):
        """
        Frame the clip, compute mel energies and fix the frame count.

        Returns:
            numpy array (N_FRAMES, N_MELS) of raw energies, or None when
            the clip is shorter than one window
        """
        audio, sample_rate = self._prepare_audio(samples, sample_rate)
        if audio is None or self.frame_count(audio.size) == 0:
            return None

        frames = librosa.util.frame(
            np.ascontiguousarray(audio),
            frame_length=self.n_fft,
            hop_length=self.hop_length,
            axis=0
        )

        mel = self._mel_frames(frames, sample_rate)
        return normalize_frames(mel, self.n_frames)

    def extract_features(self, samples, sample_rate=None):
        """
        Extract the normalized log-mel spectrogram used for training and inference

        Args:
            samples: mono PCM samples in [-1, 1]
            sample_rate: rate of the samples, defaults to the extractor's rate

        Returns:
            float32 numpy array (N_FRAMES, N_MELS), or None if the clip
            holds no full window
        """
        mel_spec = self.extract_mel_spectrogram(samples, sample_rate)
        if mel_spec is None:
            logger.debug("Clip too short for a single window, no features")
            return None

        return normalize_spectrogram(mel_spec)

    def extract_mfcc(self, samples, sample_rate=None, n_mfcc=N_MFCC):
        """
        MFCC matrix (N_FRAMES, n_mfcc), frame-normalized like the spectrogram
        """
        audio, sample_rate = self._prepare_audio(samples, sample_rate)
        if audio is None or self.frame_count(audio.size) == 0:
            return None

        mfccs = librosa.feature.mfcc(
            y=audio,
            sr=sample_rate,
            n_mfcc=n_mfcc,
            n_fft=self.n_fft,
            hop_length=self.hop_length,
            n_mels=self.n_mels,
            center=False
        )

        return normalize_frames(mfccs.T, self.n_frames).astype(np.float32)

    def extract_statistical_features(self, samples, sample_rate=None):
        """
        Clip-level loudness and spectral shape descriptors
        """
        audio, sample_rate = self._prepare_audio(samples, sample_rate)
        if audio is None or audio.size == 0:
            return dict.fromkeys(STATISTICAL_FEATURES, 0.0)

        features = {
            "rms": calculate_rms(audio),
            "zcr": calculate_zero_crossing_rate(audio),
            "energy": float(np.sum(audio.astype(np.float64) ** 2)),
        }

        spectrum = np.abs(np.fft.rfft(audio.astype(np.float64)))
        freqs = np.fft.rfftfreq(audio.size, d=1.0 / sample_rate)
        total = spectrum.sum()

        if total > 0:
            features["spectral_centroid"] = float(np.sum(freqs * spectrum) / total)
            features["spectral_flatness"] = float(
                librosa.feature.spectral_flatness(S=spectrum[:, np.newaxis])[0, 0]
            )
            cumulative = np.cumsum(spectrum)
            idx = min(int(np.searchsorted(cumulative, 0.85 * total)), freqs.size - 1)
            features["spectral_rolloff"] = float(freqs[idx])
        else:
            features["spectral_centroid"] = 0.0
            features["spectral_flatness"] = 0.0
            features["spectral_rolloff"] = 0.0

        # Higher moments are undefined for a flat spectrum
        if spectrum.size > 1 and np.ptp(spectrum) > 0:
            features["spectral_kurtosis"] = float(stats.kurtosis(spectrum))
            features["spectral_skewness"] = float(stats.skew(spectrum))
        else:
            features["spectral_kurtosis"] = 0.0
            features["spectral_skewness"] = 0.0

        return features

    def get_model_input(self, spectrogram):
        """
        Prepare a spectrogram for the CNN: (1, N_FRAMES, N_MELS, 1) float32
        """
        return to_model_input(spectrogram)
