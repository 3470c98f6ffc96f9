"""Tests for the threshold bark classifier."""

import random
from unittest.mock import Mock

import pytest

from barkwatch.monitoring.classifier import ThresholdBarkClassifier
from barkwatch.monitoring.interfaces import BarkClassifier
from barkwatch.monitoring.models import AudioSample


def sample(volume: float, frequency: float) -> AudioSample:
    return AudioSample(volume=volume, frequency=frequency, captured_at=0.0)


@pytest.mark.unit
class TestThreshold:
    """Test cases for the volume threshold."""

    def test_default_sensitivity_threshold(self) -> None:
        """Test sensitivity 5 sits on the base threshold."""
        classifier = ThresholdBarkClassifier()

        assert classifier.threshold_for(5) == 50.0

    def test_low_sensitivity_raises_threshold(self) -> None:
        """Test sensitivity 1 requires louder samples than the base threshold."""
        classifier = ThresholdBarkClassifier()

        assert classifier.threshold_for(1) == 72.0
        assert classifier.threshold_for(3) == 56.0

    def test_high_sensitivity_never_goes_below_base(self) -> None:
        """Test the base threshold is a floor."""
        classifier = ThresholdBarkClassifier()

        assert classifier.threshold_for(10) == 50.0

    def test_threshold_non_increasing_in_sensitivity(self) -> None:
        """Test raising sensitivity never raises the threshold."""
        classifier = ThresholdBarkClassifier()

        thresholds = [classifier.threshold_for(s) for s in range(1, 11)]

        assert all(a >= b for a, b in zip(thresholds, thresholds[1:]))

    def test_detection_monotonic_in_sensitivity(self) -> None:
        """Test a sample detected at one sensitivity is detected at every higher one."""
        classifier = ThresholdBarkClassifier(rng=random.Random(0))

        for volume in range(0, 101, 2):
            results = [
                classifier.classify(sample(volume, 1000.0), s).is_bark for s in range(1, 11)
            ]
            first = results.index(True) if True in results else len(results)
            assert all(results[first:])

    def test_volume_equal_to_threshold_is_not_bark(self) -> None:
        """Test the volume comparison is strict."""
        classifier = ThresholdBarkClassifier()

        assert classifier.classify(sample(50.0, 1000.0), 5).is_bark is False
        assert classifier.classify(sample(50.1, 1000.0), 5).is_bark is True


@pytest.mark.unit
class TestBandFilter:
    """Test cases for the bark frequency band."""

    @pytest.mark.parametrize("frequency", [0.0, 120.0, 499.9, 2000.1, 4000.0, 12000.0])
    def test_out_of_band_never_bark(self, frequency: float) -> None:
        """Test out-of-band frequencies are rejected at any volume and sensitivity."""
        classifier = ThresholdBarkClassifier()

        for sensitivity in range(1, 11):
            for volume in (51.0, 75.0, 100.0):
                result = classifier.classify(sample(volume, frequency), sensitivity)
                assert result.is_bark is False

    def test_band_edges_inclusive(self) -> None:
        """Test 500 Hz and 2000 Hz count as in band."""
        classifier = ThresholdBarkClassifier()

        assert classifier.classify(sample(90.0, 500.0), 5).is_bark is True
        assert classifier.classify(sample(90.0, 2000.0), 5).is_bark is True

    def test_invalid_band_rejected(self) -> None:
        """Test a reversed band raises ValueError."""
        with pytest.raises(ValueError, match="low bound"):
            ThresholdBarkClassifier(frequency_band=(2000.0, 500.0))


@pytest.mark.unit
class TestConfidence:
    """Test cases for confidence assignment."""

    def test_bark_confidence_range(self) -> None:
        """Test bark candidates get confidence in [0.7, 1.0]."""
        classifier = ThresholdBarkClassifier(rng=random.Random(7))

        for _ in range(200):
            result = classifier.classify(sample(95.0, 900.0), 5)
            assert result.is_bark
            assert 0.7 <= result.confidence <= 1.0

    def test_non_bark_confidence_range(self) -> None:
        """Test non-candidates get confidence in [0.0, 0.3]."""
        classifier = ThresholdBarkClassifier(rng=random.Random(7))

        for _ in range(200):
            result = classifier.classify(sample(20.0, 900.0), 5)
            assert not result.is_bark
            assert 0.0 <= result.confidence <= 0.3

    def test_confidence_ranges_are_half_open(self) -> None:
        """Test the largest random draw stays below each upper bound."""
        rng = Mock()
        rng.random.return_value = 1.0 - 2**-53
        classifier = ThresholdBarkClassifier(rng=rng)

        bark = classifier.classify(sample(95.0, 900.0), 5)
        quiet = classifier.classify(sample(20.0, 900.0), 5)

        assert 0.7 <= bark.confidence < 1.0
        assert 0.0 <= quiet.confidence < 0.3

    def test_deterministic_with_seeded_rng(self) -> None:
        """Test identical seeds give identical results."""
        first = ThresholdBarkClassifier(rng=random.Random(42))
        second = ThresholdBarkClassifier(rng=random.Random(42))
        samples = [sample(v, 1000.0) for v in (10, 60, 80, 95)]

        assert [first.classify(s, 5) for s in samples] == [
            second.classify(s, 5) for s in samples
        ]

    def test_result_carries_sample_values(self) -> None:
        """Test the result echoes volume and frequency."""
        result = ThresholdBarkClassifier().classify(sample(66.0, 1234.0), 5)

        assert result.volume == 66.0
        assert result.frequency == 1234.0

    def test_is_bark_classifier(self) -> None:
        """Test the reference classifier implements the classifier interface."""
        assert isinstance(ThresholdBarkClassifier(), BarkClassifier)
