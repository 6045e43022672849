from typing import Optional

from locus.models import AccuracyBand, PartialLocation, SignalEstimate

ALGORITHM = "connection_quality"
CONFIDENCE_CAP = 35

EFFECTIVE_TYPE_BONUS = {
    "4g": 3,
    "3g": 2,
    "2g": 1,
    "slow-2g": 1,
}


def _bandwidth_points(downlink_mbps: Optional[float]):
    if downlink_mbps is None:
        return 0, None
    if downlink_mbps > 100:
        return 5, "high-speed infrastructure region"
    if downlink_mbps > 25:
        return 3, "broadband-served area"
    return 0, None


def _rtt_points(rtt_ms: Optional[float]) -> int:
    if rtt_ms is None:
        return 0
    if rtt_ms < 10:
        return 8
    if rtt_ms < 30:
        return 5
    if rtt_ms < 100:
        return 3
    return 1


def estimate_from_connection(
    downlink_mbps: Optional[float],
    rtt_ms: Optional[float],
    effective_type: Optional[str],
) -> SignalEstimate:
    """
    Score the declared network quality. Fast, low-latency links suggest proximity
    to well-built infrastructure; the estimate never carries coordinates.

    Args:
        downlink_mbps (Optional[float]): Declared downlink bandwidth.
        rtt_ms (Optional[float]): Declared round-trip time.
        effective_type (Optional[str]): 4g / 3g / 2g / slow-2g.

    Returns:
        SignalEstimate: Bandwidth, RTT and connection-type bands, capped at 35.
    """
    bandwidth, description = _bandwidth_points(downlink_mbps)
    confidence = bandwidth + _rtt_points(rtt_ms)
    kind = (effective_type or "").lower()
    confidence += EFFECTIVE_TYPE_BONUS.get(kind, 0)

    if description is None and rtt_ms is not None and rtt_ms < 30:
        description = "low-latency network path"

    return SignalEstimate(
        algorithm_name=ALGORITHM,
        partial_location=PartialLocation(description=description),
        confidence=min(confidence, CONFIDENCE_CAP),
        accuracy_band=AccuracyBand.VERY_BROAD,
    )
