"""Energy and zero-crossing voice activity classifier.

A pragmatic heuristic, not a statistical model: an average-amplitude gate
with a fast accept for loud input, and a small feature score for the
ambiguous middle band.
"""

import logging
from dataclasses import dataclass

import numpy as np

from ..audio.analysis import decode_pcm16
from ..audio.capture import AudioSegment
from ..config import VADHeuristics

logger = logging.getLogger(__name__)

# Threshold settings are expressed in thousandths of full scale
THRESHOLD_SCALE: float = 1000.0
DEFAULT_THRESHOLD: int = 30
RANGE_EPSILON: float = 0.001


@dataclass(frozen=True)
class VoiceActivityFeatures:
    """Per-segment measurements used for classification.

    Attributes:
        average_amplitude: Mean absolute amplitude in [0, 1]
        peak_amplitude: Maximum absolute amplitude in [0, 1]
        dynamic_range: Peak over average amplitude
        zero_crossing_rate: Sign changes per sample
        frame_energy_variance: Population variance of per-frame RMS
    """

    average_amplitude: float
    peak_amplitude: float
    dynamic_range: float
    zero_crossing_rate: float
    frame_energy_variance: float


def extract_features(samples: np.ndarray, sample_rate: int, frame_ms: int = 25) -> VoiceActivityFeatures:
    """Compute classification features from normalized samples.

    Args:
        samples: Normalized amplitudes in [-1, 1]
        sample_rate: Sample rate in Hz
        frame_ms: Frame length for the energy variance measure

    Returns:
        VoiceActivityFeatures for the samples
    """
    magnitudes = np.abs(samples)
    average = float(magnitudes.mean())
    peak = float(magnitudes.max())

    non_negative = samples >= 0
    crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
    zcr = crossings / samples.size

    frame_size = max(1, int(sample_rate * frame_ms / 1000))
    frame_count = samples.size // frame_size
    variance = 0.0
    if frame_count > 1:
        frames = samples[: frame_count * frame_size].reshape(frame_count, frame_size)
        energies = np.sqrt(np.mean(np.square(frames), axis=1))
        variance = float(np.var(energies))

    return VoiceActivityFeatures(
        average_amplitude=average,
        peak_amplitude=peak,
        dynamic_range=peak / (average + RANGE_EPSILON),
        zero_crossing_rate=zcr,
        frame_energy_variance=variance,
    )


def score_features(features: VoiceActivityFeatures, threshold: float, heuristics: VADHeuristics) -> int:
    """Score the ambiguous band between the fast reject and fast accept.

    Args:
        features: Segment measurements
        threshold: Normalized amplitude threshold
        heuristics: Scoring bands

    Returns:
        Composite voice score
    """
    score = 0

    low, high = heuristics.dynamic_range_band
    if low < features.dynamic_range < high:
        score += 2
    elif features.dynamic_range > heuristics.dynamic_range_floor:
        score += 1

    low, high = heuristics.zcr_band
    wide_low, wide_high = heuristics.zcr_wide_band
    if low < features.zero_crossing_rate < high:
        score += 2
    elif wide_low < features.zero_crossing_rate < wide_high:
        score += 1

    if features.frame_energy_variance > heuristics.variance_epsilon:
        score += 1

    if features.peak_amplitude > threshold * heuristics.peak_ratio:
        score += 1

    return score


class VoiceActivityClassifier:
    """Decides whether an audio segment contains speech.

    Undecodable audio is classified as speech so real speech is never
    silently dropped.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        heuristics: VADHeuristics | None = None,
    ) -> None:
        """Initialize classifier.

        Args:
            threshold: Detection threshold setting (10-80)
            heuristics: Scoring bands; defaults if None
        """
        self._threshold = threshold
        self._heuristics = heuristics or VADHeuristics()

    @property
    def threshold(self) -> int:
        """Configured threshold setting."""
        return self._threshold

    def features(self, segment: AudioSegment) -> VoiceActivityFeatures:
        """Compute features for a segment.

        Raises:
            ValueError: If the segment cannot be decoded
        """
        samples = decode_pcm16(segment.data, segment.channels, segment.sample_width)
        return extract_features(samples, segment.sample_rate, self._heuristics.frame_ms)

    def classify(self, segment: AudioSegment, threshold: int | None = None) -> bool:
        """Return True if the segment contains speech.

        Args:
            segment: Audio to classify
            threshold: Override of the configured threshold setting

        Returns:
            True for speech, False for silence or noise
        """
        try:
            features = self.features(segment)
        except ValueError as e:
            logger.debug(f"Audio decode failed, assuming speech: {e}")
            return True

        level = (threshold if threshold is not None else self._threshold) / THRESHOLD_SCALE
        heuristics = self._heuristics

        if features.average_amplitude < level:
            return False
        if features.average_amplitude > level * heuristics.fast_accept_ratio:
            return True

        score = score_features(features, level, heuristics)
        is_speech = score >= heuristics.min_score
        logger.debug(
            f"Voice detection: {is_speech} (score={score}, "
            f"avg={features.average_amplitude:.4f}, "
            f"range={features.dynamic_range:.2f}, "
            f"zcr={features.zero_crossing_rate:.4f}, "
            f"variance={features.frame_energy_variance:.6f})"
        )
        return is_speech


__all__ = [
    "VoiceActivityClassifier",
    "VoiceActivityFeatures",
    "extract_features",
    "score_features",
]
