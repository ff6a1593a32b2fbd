"""Tests for the feature extraction pipeline."""

import numpy as np
import pytest

from blow_classifier.config import FFT_SIZE, HOP_LENGTH, N_FRAMES, N_MELS, SAMPLE_RATE
from blow_classifier.features.feature_extraction import (
    FeatureExtractor, normalize_frames, normalize_spectrogram,
    calculate_rms, calculate_zero_crossing_rate, STATISTICAL_FEATURES
)

from conftest import make_tone


@pytest.fixture(scope="module")
def extractor():
    return FeatureExtractor(SAMPLE_RATE)


class TestNormalizeFrames:
    """Frame-count normalization."""

    def test_exact_length_is_returned_unchanged(self):
        """Test that an exact-length sequence is returned as is."""
        frames = np.random.rand(N_FRAMES, N_MELS)
        assert normalize_frames(frames, N_FRAMES) is frames

    def test_idempotent(self):
        """Test that normalizing twice changes nothing."""
        frames = np.arange(50 * 3).reshape(50, 3)
        once = normalize_frames(frames, N_FRAMES)
        twice = normalize_frames(once, N_FRAMES)
        np.testing.assert_array_equal(once, twice)

    def test_downsample_picks_strided_increasing_rows(self):
        """Test strided downsampling of long sequences."""
        n = 75
        frames = np.arange(n)[:, np.newaxis]
        result = normalize_frames(frames, N_FRAMES)[:, 0]

        expected = [int(np.floor(i * n / N_FRAMES)) for i in range(N_FRAMES)]
        np.testing.assert_array_equal(result, expected)
        assert np.all(np.diff(result) > 0)

    def test_cyclic_pad_repeats_in_order(self):
        """Test cyclic padding of short sequences."""
        frames = np.arange(5)[:, np.newaxis]
        result = normalize_frames(frames, N_FRAMES)[:, 0]

        assert len(result) == N_FRAMES
        np.testing.assert_array_equal(result, np.arange(N_FRAMES) % 5)

    def test_single_frame_is_repeated(self):
        """Test that a single frame fills the whole output."""
        frames = np.array([[1.0, 2.0]])
        result = normalize_frames(frames, 4)
        np.testing.assert_array_equal(result, [[1.0, 2.0]] * 4)

    def test_empty_sequence_rejected(self):
        """Test that an empty sequence raises."""
        with pytest.raises(ValueError):
            normalize_frames(np.empty((0, N_MELS)), N_FRAMES)


class TestNormalizeSpectrogram:
    """Log scaling and global standardization."""

    def test_zero_mean_unit_std(self):
        """Test zero mean and unit standard deviation."""
        spec = np.random.default_rng(3).uniform(0.0, 10.0, (N_FRAMES, N_MELS))
        result = normalize_spectrogram(spec)

        assert result.dtype == np.float32
        assert abs(result.mean()) < 1e-5
        assert abs(result.std() - 1.0) < 1e-3

    def test_statistics_are_global_not_per_frame(self):
        """Test that statistics span the whole matrix."""
        spec = np.ones((N_FRAMES, N_MELS))
        spec[: N_FRAMES // 2] = np.e  # log -> 1 in the first half, 0 in the second
        result = normalize_spectrogram(spec)

        # Per-frame standardization would give all zeros
        np.testing.assert_allclose(result[0], 1.0, atol=1e-5)
        np.testing.assert_allclose(result[-1], -1.0, atol=1e-5)

    def test_constant_input_is_finite(self):
        """Test that a constant matrix stays finite."""
        result = normalize_spectrogram(np.full((N_FRAMES, N_MELS), 3.0))
        assert np.all(np.isfinite(result))
        np.testing.assert_allclose(result, 0.0, atol=1e-6)

    def test_zeros_use_log_floor(self):
        """Test that zeros are floored before the log."""
        spec = np.zeros((N_FRAMES, N_MELS))
        spec[0, 0] = 1.0
        result = normalize_spectrogram(spec)
        assert np.all(np.isfinite(result))


class TestFeatureExtractor:
    """Test cases for FeatureExtractor."""

    def test_frame_count(self, extractor):
        """Test the number of analysis windows."""
        assert extractor.frame_count(FFT_SIZE - 1) == 0
        assert extractor.frame_count(FFT_SIZE) == 1
        assert extractor.frame_count(FFT_SIZE + HOP_LENGTH - 1) == 1
        assert extractor.frame_count(SAMPLE_RATE) == (SAMPLE_RATE - FFT_SIZE) // HOP_LENGTH + 1

    def test_one_second_clip_shape(self, extractor, sample_audio_data):
        """Test extraction of a one second clip."""
        audio, sr = sample_audio_data
        features = extractor.extract_features(audio, sr)

        assert features.shape == (N_FRAMES, N_MELS)
        assert features.dtype == np.float32
        assert np.all(np.isfinite(features))
        assert abs(features.mean()) < 1e-4

    def test_long_clip_is_downsampled(self, extractor):
        """Test that a long clip is downsampled."""
        audio = make_tone(duration=5.0)
        assert extractor.extract_features(audio).shape == (N_FRAMES, N_MELS)

    def test_short_clip_has_no_features(self, extractor):
        """Test that a clip shorter than one window has no features."""
        assert extractor.extract_features(np.zeros(FFT_SIZE - 1, dtype=np.float32)) is None

    def test_none_and_empty_have_no_features(self, extractor):
        """Test that None and empty input have no features."""
        assert extractor.extract_features(None) is None
        assert extractor.extract_features([]) is None

    def test_single_window_is_repeated(self, extractor):
        """Test that a single window is repeated to the frame count."""
        features = extractor.extract_features(make_tone()[:FFT_SIZE])

        assert features.shape == (N_FRAMES, N_MELS)
        for row in features[1:]:
            np.testing.assert_array_equal(row, features[0])

    def test_deterministic(self, extractor, noise_audio_data):
        """Test that extraction is deterministic."""
        audio, sr = noise_audio_data
        np.testing.assert_array_equal(
            extractor.extract_features(audio, sr),
            extractor.extract_features(audio.copy(), sr)
        )

    def test_accepts_plain_lists(self, extractor, sample_audio_data):
        """Test that plain lists are accepted."""
        audio, sr = sample_audio_data
        np.testing.assert_allclose(
            extractor.extract_features(audio.tolist(), sr),
            extractor.extract_features(audio, sr)
        )

    def test_silence_is_well_defined(self, extractor):
        """Test that silence gives finite features."""
        features = extractor.extract_features(np.zeros(SAMPLE_RATE, dtype=np.float32))
        assert np.all(np.isfinite(features))

    def test_other_sample_rate(self, extractor):
        """Test extraction at another sample rate."""
        audio = make_tone(sample_rate=16000)
        assert extractor.extract_features(audio, 16000).shape == (N_FRAMES, N_MELS)

    def test_invalid_sample_rate(self, extractor, sample_audio_data):
        """Test that a non-positive sample rate raises."""
        audio, _ = sample_audio_data
        with pytest.raises(ValueError):
            extractor.extract_features(audio, 0)

    def test_degenerate_frame_becomes_zero_vector(self, sample_audio_data):
        """Test that a non-finite window becomes a zero vector."""
        audio, sr = sample_audio_data
        audio = audio.copy()
        audio[:100] = np.nan  # only the first window covers these samples

        extractor = FeatureExtractor(sr)
        mel = extractor.extract_mel_spectrogram(audio, sr)

        assert extractor.degenerate_frames == 1
        np.testing.assert_array_equal(mel[0], 0.0)
        assert np.all(np.isfinite(extractor.extract_features(audio, sr)))

    def test_get_model_input(self, extractor, sample_spectrogram):
        """Test model input shaping."""
        batch = extractor.get_model_input(sample_spectrogram)
        assert batch.shape == (1, N_FRAMES, N_MELS, 1)
        assert extractor.get_model_input(None) is None

        with pytest.raises(ValueError):
            extractor.get_model_input(np.zeros((N_MELS, N_FRAMES)))

    def test_mfcc_shape(self, extractor, sample_audio_data):
        """Test MFCC output shape."""
        audio, sr = sample_audio_data
        mfcc = extractor.extract_mfcc(audio, sr)
        assert mfcc.shape == (N_FRAMES, 13)
        assert extractor.extract_mfcc(audio[:100], sr) is None

    def test_statistical_features(self, extractor, sample_audio_data):
        """Test clip statistics on a pure tone."""
        audio, sr = sample_audio_data
        features = extractor.extract_statistical_features(audio, sr)

        assert set(features) == set(STATISTICAL_FEATURES)
        assert features["rms"] == pytest.approx(0.5 / np.sqrt(2), rel=1e-2)
        assert features["spectral_centroid"] == pytest.approx(440.0, rel=0.1)

    def test_statistical_features_empty(self, extractor):
        """Test clip statistics on empty input."""
        features = extractor.extract_statistical_features([])
        assert all(value == 0.0 for value in features.values())


class TestSignalHelpers:

    def test_rms(self):
        """Test RMS energy."""
        assert calculate_rms([1.0, -1.0, 1.0, -1.0]) == pytest.approx(1.0)
        assert calculate_rms([]) == 0.0

    def test_zero_crossing_rate(self):
        """Test zero crossing rate."""
        assert calculate_zero_crossing_rate([1.0, -1.0, 1.0, -1.0]) == pytest.approx(0.75)
        assert calculate_zero_crossing_rate([0.5, 0.5]) == 0.0
