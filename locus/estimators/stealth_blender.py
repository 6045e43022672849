from typing import List, Sequence

import numpy as np

from locus.models import SignalEstimate, StealthEstimate

COORDINATE_CAP = 90
DESCRIPTIVE_CAP = 75
GENERAL_AREA_CAP = 50

# (exclusive lower bound, label), checked top-down
ACCURACY_BANDS = (
    (80, "100m–2km"),
    (60, "1km–10km"),
    (40, "5km–50km"),
    (20, "20km–200km"),
)
REGIONAL_ONLY = "regional only"


def accuracy_band_for(confidence: int) -> str:
    """Label the radius of uncertainty for a final confidence value."""
    for threshold, label in ACCURACY_BANDS:
        if confidence > threshold:
            return label
    return REGIONAL_ONLY


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def _mean_confidence(estimates: Sequence[SignalEstimate]) -> int:
    if not estimates:
        return 0
    return _round_half_up(float(np.mean([e.confidence for e in estimates])))


def blend_estimates(estimates: Sequence[SignalEstimate]) -> StealthEstimate:
    """
    Combine signal estimates into one confidence-weighted guess.

    Coordinate-bearing estimates are averaged with weight confidence/100.
    Without any coordinates the best descriptive estimate is used; without
    any usable field a general-area placeholder is returned.

    Args:
        estimates (Sequence[SignalEstimate]): Output of every estimator.

    Returns:
        StealthEstimate: Confidence capped at 90 (coordinates), 75 (descriptive)
                         or 50 (general area).
    """
    located = [e for e in estimates if e.partial_location.has_coordinates and e.confidence > 0]
    weights = np.array([e.confidence / 100.0 for e in located])

    if located and weights.sum() > 0:
        latitude = float(np.average([e.partial_location.latitude for e in located], weights=weights))
        longitude = float(np.average([e.partial_location.longitude for e in located], weights=weights))
        confidence = min(_mean_confidence(estimates), COORDINATE_CAP)
        strongest = max(located, key=lambda e: e.confidence)
        names = ", ".join(e.algorithm_name for e in located)
        return StealthEstimate(
            latitude=latitude,
            longitude=longitude,
            country=strongest.partial_location.country,
            region=strongest.partial_location.region,
            city=strongest.partial_location.city,
            confidence=confidence,
            accuracy_band=accuracy_band_for(confidence),
            source_description=f"weighted blend of {len(located)} coordinate signal(s): {names}",
        )

    descriptive: List[SignalEstimate] = [e for e in estimates if not e.partial_location.is_empty]
    if descriptive:
        # max() keeps the first of equal confidences
        best = max(descriptive, key=lambda e: e.confidence)
        confidence = min(best.confidence, DESCRIPTIVE_CAP)
        partial = best.partial_location
        return StealthEstimate(
            country=partial.country,
            region=partial.region,
            city=partial.city,
            confidence=confidence,
            accuracy_band=accuracy_band_for(confidence),
            source_description=f"descriptive fields from {best.algorithm_name}"
            + (f" ({partial.description})" if partial.description else ""),
        )

    confidence = min(_mean_confidence(estimates), GENERAL_AREA_CAP)
    return StealthEstimate(
        confidence=confidence,
        accuracy_band=accuracy_band_for(confidence),
        source_description="general area only",
    )
