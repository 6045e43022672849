from typing import Optional

from locus.models import AccuracyBand, PartialLocation, SignalEstimate
from locus.request_context import ClientMetadata

ALGORITHM = "device_characteristics"
CONFIDENCE_CAP = 30

# Weak signal: high-end hardware correlates loosely with developed markets
HIGH_CONCURRENCY = 8
HIGH_MEMORY_GB = 8
CONCURRENCY_BONUS = 3
MEMORY_BONUS = 2
PATTERN_BONUS = 2


def estimate_from_device(metadata: ClientMetadata, user_agent: Optional[str]) -> SignalEstimate:
    """Small bumps for high-end hardware and for screen/browser pattern presence, capped at 30."""
    confidence = 0
    if metadata.hardware_concurrency is not None and metadata.hardware_concurrency >= HIGH_CONCURRENCY:
        confidence += CONCURRENCY_BONUS
    if metadata.device_memory is not None and metadata.device_memory >= HIGH_MEMORY_GB:
        confidence += MEMORY_BONUS
    if metadata.screen_resolution:
        confidence += PATTERN_BONUS
    if user_agent:
        confidence += PATTERN_BONUS

    return SignalEstimate(
        algorithm_name=ALGORITHM,
        partial_location=PartialLocation(),
        confidence=min(confidence, CONFIDENCE_CAP),
        accuracy_band=AccuracyBand.VERY_BROAD,
    )
