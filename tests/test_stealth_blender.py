import pytest

from locus.estimators.stealth_blender import accuracy_band_for, blend_estimates
from locus.models import AccuracyBand, PartialLocation, SignalEstimate


def _estimate(name, confidence, **location):
    return SignalEstimate(
        algorithm_name=name,
        partial_location=PartialLocation(**location),
        confidence=confidence,
        accuracy_band=AccuracyBand.VERY_BROAD,
    )


def test_accuracy_band_thresholds_are_exclusive():
    assert accuracy_band_for(90) == "100m–2km"
    assert accuracy_band_for(80) == "1km–10km"
    assert accuracy_band_for(61) == "1km–10km"
    assert accuracy_band_for(60) == "5km–50km"
    assert accuracy_band_for(40) == "20km–200km"
    assert accuracy_band_for(21) == "20km–200km"
    assert accuracy_band_for(20) == "regional only"
    assert accuracy_band_for(0) == "regional only"


def test_single_coordinate_estimate_is_returned_as_is():
    stealth = blend_estimates([
        _estimate("ip_geolocation", 80, latitude=37.4, longitude=-122.1, country="United States"),
        _estimate("network_infrastructure", 15, region="Global (Google infrastructure)"),
        _estimate("timezone_language", 0),
        _estimate("connection_quality", 0),
        _estimate("device_characteristics", 0),
    ])
    assert stealth.latitude == pytest.approx(37.4)
    assert stealth.longitude == pytest.approx(-122.1)
    assert stealth.country == "United States"
    # mean of (80, 15, 0, 0, 0) = 19
    assert stealth.confidence == 19
    assert stealth.accuracy_band == "regional only"


def test_coordinates_are_confidence_weighted():
    stealth = blend_estimates([
        _estimate("a", 75, latitude=40.0, longitude=-74.0),
        _estimate("b", 25, latitude=44.0, longitude=-70.0),
    ])
    assert stealth.latitude == pytest.approx(41.0)
    assert stealth.longitude == pytest.approx(-73.0)
    assert stealth.confidence == 50


def test_zero_confidence_coordinates_are_ignored():
    stealth = blend_estimates([
        _estimate("a", 60, latitude=10.0, longitude=10.0),
        _estimate("b", 0, latitude=-50.0, longitude=-50.0),
    ])
    assert (stealth.latitude, stealth.longitude) == (pytest.approx(10.0), pytest.approx(10.0))
    assert stealth.confidence == 30


def test_mean_rounds_half_up():
    stealth = blend_estimates([
        _estimate("a", 1, latitude=1.0, longitude=1.0),
        _estimate("b", 0),
    ])
    assert stealth.confidence == 1


def test_coordinate_confidence_capped_at_ninety():
    stealth = blend_estimates([_estimate("a", 100, latitude=1.0, longitude=1.0)])
    assert stealth.confidence == 90
    assert stealth.accuracy_band == "100m–2km"


def test_descriptive_fallback_uses_strongest_described_signal():
    stealth = blend_estimates([
        _estimate("network_infrastructure", 20, country="Germany", region="Western Europe"),
        _estimate("connection_quality", 16, description="high-speed infrastructure region"),
        _estimate("device_characteristics", 9),
    ])
    assert stealth.latitude is None and stealth.longitude is None
    assert stealth.country == "Germany"
    assert stealth.confidence == 20
    assert stealth.source_description.startswith("descriptive fields from network_infrastructure")


def test_descriptive_fallback_capped_at_seventy_five():
    stealth = blend_estimates([_estimate("a", 99, country="France")])
    assert stealth.confidence == 75


def test_general_area_when_nothing_is_usable():
    stealth = blend_estimates([_estimate("a", 5), _estimate("b", 0), _estimate("c", 0)])
    assert stealth.source_description == "general area only"
    assert stealth.confidence == 2
    assert stealth.latitude is None and stealth.country is None


def test_general_area_capped_at_fifty():
    stealth = blend_estimates([_estimate("a", 99), _estimate("b", 99)])
    assert stealth.confidence == 50


def test_empty_input_yields_zero_confidence():
    stealth = blend_estimates([])
    assert stealth.confidence == 0
    assert stealth.accuracy_band == "regional only"
