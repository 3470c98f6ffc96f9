"""Reference threshold-based bark classifier."""

import math
import random

from .config import (
    BARK_CONFIDENCE_MAX,
    BARK_CONFIDENCE_MIN,
    BARK_FREQUENCY_HIGH_HZ,
    BARK_FREQUENCY_LOW_HZ,
    BASE_VOLUME_THRESHOLD,
    MAX_SENSITIVITY,
    NON_BARK_CONFIDENCE_MAX,
    SENSITIVITY_SCALE_FACTOR,
)
from .interfaces import BarkClassifier
from .logging_utils import get_logger
from .models import AudioSample, ClassificationResult

logger = get_logger(__name__)


class ThresholdBarkClassifier(BarkClassifier):
    """
    Classifies loud samples in the canine bark band as barks.

    Confidence is not a model score here: candidates get a value drawn from
    [0.7, 1.0) and everything else from [0.0, 0.3). A model-backed classifier
    can replace this class without changes to the monitoring service.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        base_threshold: float = BASE_VOLUME_THRESHOLD,
        scale_factor: float = SENSITIVITY_SCALE_FACTOR,
        frequency_band: tuple[float, float] = (
            BARK_FREQUENCY_LOW_HZ,
            BARK_FREQUENCY_HIGH_HZ,
        ),
    ) -> None:
        """
        Initialize the classifier.

        Args:
            rng: Random source for confidence draws (seed it for reproducible runs)
            base_threshold: Volume floor below which nothing counts as a bark
            scale_factor: Threshold step per sensitivity point
            frequency_band: Inclusive (low, high) bark band in Hz
        """
        low, high = frequency_band
        if low > high:
            raise ValueError("Frequency band low bound must not exceed high bound")
        self._rng = rng or random.Random()
        self._base_threshold = base_threshold
        self._scale_factor = scale_factor
        self._band_low = low
        self._band_high = high

    def threshold_for(self, sensitivity: int) -> float:
        """Volume a sample must exceed at the given sensitivity."""
        return max(
            self._base_threshold, (MAX_SENSITIVITY - sensitivity) * self._scale_factor
        )

    def classify(self, sample: AudioSample, sensitivity: int) -> ClassificationResult:
        loud_enough = sample.volume > self.threshold_for(sensitivity)
        in_band = self._band_low <= sample.frequency <= self._band_high
        is_bark = loud_enough and in_band

        if is_bark:
            confidence = self._draw(BARK_CONFIDENCE_MIN, BARK_CONFIDENCE_MAX)
        else:
            confidence = self._draw(0.0, NON_BARK_CONFIDENCE_MAX)

        logger.trace(
            f"classify volume={sample.volume:.1f} freq={sample.frequency:.0f}Hz "
            f"sensitivity={sensitivity} -> bark={is_bark} ({confidence:.2f})"
        )

        return ClassificationResult(
            is_bark=is_bark,
            confidence=confidence,
            volume=sample.volume,
            frequency=sample.frequency,
        )

    def _draw(self, low: float, high: float) -> float:
        # Half-open [low, high); the sum can still round up to high
        value = low + (high - low) * self._rng.random()
        return min(value, math.nextafter(high, low))
