from locus.models import (
    AccuracyBand,
    LocationRecord,
    PartialLocation,
    SignalEstimate,
    is_known,
)

ALGORITHM = "ip_geolocation"
BASE_CONFIDENCE = 60
COORDINATE_BONUS = 20
CITY_ONLY_BONUS = 10
CONFIDENCE_CAP = 85

# Placeholder sources carry no locating value
NON_LOCATING_SOURCES = {"local", "none"}


def estimate_from_ip(record: LocationRecord) -> SignalEstimate:
    """
    Turn the aggregator's best record into a signal estimate.

    Args:
        record (LocationRecord): Best record selected by the aggregator.

    Returns:
        SignalEstimate: 60 base, +20 with coordinates, +10 with city-level data
                        only, capped at 85. Placeholder records score 0.
    """
    has_place = is_known(record.country) or is_known(record.region) or is_known(record.city)
    if record.source_id in NON_LOCATING_SOURCES or not (has_place or record.has_coordinates):
        return SignalEstimate(
            algorithm_name=ALGORITHM,
            partial_location=PartialLocation(),
            confidence=0,
            accuracy_band=AccuracyBand.VERY_BROAD,
        )

    confidence = BASE_CONFIDENCE
    if record.has_coordinates:
        confidence += COORDINATE_BONUS
        band = AccuracyBand.CITY_REGION
    elif is_known(record.city):
        confidence += CITY_ONLY_BONUS
        band = AccuracyBand.REGIONAL
    else:
        band = AccuracyBand.BROAD_REGIONAL

    partial = PartialLocation(
        country=record.country if is_known(record.country) else None,
        region=record.region if is_known(record.region) else None,
        city=record.city if is_known(record.city) else None,
        latitude=record.latitude,
        longitude=record.longitude,
        timezone=record.timezone if is_known(record.timezone) else None,
        description=f"IP geolocation via {record.source_id}",
    )
    return SignalEstimate(
        algorithm_name=ALGORITHM,
        partial_location=partial,
        confidence=min(confidence, CONFIDENCE_CAP),
        accuracy_band=band,
    )
