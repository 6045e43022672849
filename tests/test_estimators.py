import pytest

from locus.aggregator import LOCAL_RECORD, UNKNOWN_RECORD
from locus.estimators.connection_quality import estimate_from_connection
from locus.estimators.device_characteristics import estimate_from_device
from locus.estimators.ip_geolocation import estimate_from_ip
from locus.estimators.network_infrastructure import ISP_REGIONS, estimate_from_network, match_isp
from locus.estimators.stealth_orchestrator import declared_languages, run_signal_estimators
from locus.estimators.timezone_language import (
    REGION_LANGUAGES,
    TIMEZONE_COORDINATES,
    estimate_from_timezone,
    match_timezone,
)
from locus.models import AccuracyBand, LocationRecord
from locus.request_context import ClientMetadata, build_request_context


# --- IP geolocation ---

def test_ip_estimate_with_coordinates():
    record = LocationRecord(source_id="ipinfo.io", country="US", city="Mountain View",
                            latitude=37.4, longitude=-122.1)
    est = estimate_from_ip(record)
    assert est.confidence == 80
    assert est.accuracy_band == AccuracyBand.CITY_REGION
    assert est.partial_location.latitude == 37.4


def test_ip_estimate_city_only_and_country_only():
    assert estimate_from_ip(LocationRecord(source_id="a", country="US", city="Austin")).confidence == 70
    assert estimate_from_ip(LocationRecord(source_id="a", country="US")).confidence == 60


def test_ip_estimate_placeholders_carry_nothing():
    for record in (LOCAL_RECORD, UNKNOWN_RECORD):
        est = estimate_from_ip(record)
        assert est.confidence == 0
        assert est.partial_location.is_empty


# --- Network infrastructure ---

def test_isp_table_is_lowercase_with_bonus_in_range():
    for needle, hint in ISP_REGIONS:
        assert needle == needle.lower()
        assert 15 <= hint.bonus <= 20


def test_known_isp_matches_case_insensitively():
    record = LocationRecord(source_id="x", isp_name="COMCAST Cable Communications, LLC")
    est = estimate_from_network(record, {})
    assert est.confidence == 18
    assert est.partial_location.country == "United States"
    assert est.partial_location.region == "North America"


def test_organization_is_used_when_isp_is_unknown():
    assert match_isp("Unknown") is None
    record = LocationRecord(source_id="x", isp_name="Unknown", organization="Deutsche Telekom AG")
    assert estimate_from_network(record, {}).confidence == 20


def test_unmatched_isp_gets_floor_plus_routing_headers():
    record = LocationRecord(source_id="x", isp_name="Example Hosting Ltd")
    assert estimate_from_network(record, {}).confidence == 5

    headers = {"cf-ray": "abc", "cf-ipcountry": "DE"}
    est = estimate_from_network(record, headers)
    assert est.confidence == 15
    assert est.partial_location.country == "DE"


def test_routing_bonus_is_capped_at_fifteen():
    record = LocationRecord(source_id="x", isp_name="Telstra Corporation")
    headers = {h: "1" for h in ("cf-ray", "cf-connecting-ip", "via", "x-cache", "x-served-by")}
    assert estimate_from_network(record, headers).confidence == 18 + 15


# --- Timezone / language ---

def test_timezone_table_confidences_in_range():
    for anchor in TIMEZONE_COORDINATES.values():
        assert 20 <= anchor.confidence <= 25
        assert -90 <= anchor.latitude <= 90 and -180 <= anchor.longitude <= 180
    assert dict(REGION_LANGUAGES)["America/"] == ("en-US", "es", "fr-CA", "pt-BR")


def test_exact_timezone_with_primary_language():
    est = estimate_from_timezone("America/New_York", ["en-US"])
    assert est.confidence == 35
    assert est.partial_location.latitude == pytest.approx(40.7128)
    assert est.partial_location.longitude == pytest.approx(-74.0060)


def test_language_primary_subtag_and_secondary_bonus():
    assert estimate_from_timezone("America/New_York", ["es-MX"]).confidence == 35
    assert estimate_from_timezone("America/New_York", ["fr-FR", "en-US"]).confidence == 30
    assert estimate_from_timezone("America/New_York", ["ja-JP"]).confidence == 25


def test_partial_city_segment_match_loses_five():
    key, anchor, exact = match_timezone("America/Argentina/Buenos_Aires")
    assert key == "America/Buenos_Aires"
    assert not exact
    est = estimate_from_timezone("America/Argentina/Buenos_Aires", [])
    assert est.confidence == anchor.confidence - 5


def test_unmatched_or_missing_timezone_scores_zero():
    assert estimate_from_timezone("Etc/UTC", ["en-US"]).confidence == 0
    assert estimate_from_timezone(None, ["en-US"]).confidence == 0
    assert estimate_from_timezone("UTC", []).confidence == 0


# --- Connection quality ---

def test_connection_bands():
    assert estimate_from_connection(150, 5, "4g").confidence == 5 + 8 + 3
    assert estimate_from_connection(50, 20, "3g").confidence == 3 + 5 + 2
    assert estimate_from_connection(10, 60, "2g").confidence == 0 + 3 + 1
    assert estimate_from_connection(10, 250, "slow-2g").confidence == 0 + 1 + 1


def test_connection_without_metadata_is_zero():
    est = estimate_from_connection(None, None, None)
    assert est.confidence == 0
    assert est.partial_location.is_empty


def test_connection_high_speed_description():
    est = estimate_from_connection(300, 4, "4g")
    assert est.partial_location.description == "high-speed infrastructure region"
    assert not est.partial_location.has_coordinates


# --- Device characteristics ---

def test_device_bumps_are_small():
    metadata = ClientMetadata(hardware_concurrency=16, device_memory=8, screen_resolution="2560x1440")
    est = estimate_from_device(metadata, "Mozilla/5.0")
    assert est.confidence == 3 + 2 + 2 + 2
    assert est.confidence <= 30
    assert est.partial_location.is_empty


def test_device_without_metadata_is_zero():
    assert estimate_from_device(ClientMetadata(), None).confidence == 0
    assert estimate_from_device(ClientMetadata(hardware_concurrency=4, device_memory=4), None).confidence == 0


# --- Orchestration helpers ---

def test_declared_languages_fall_back_to_accept_language():
    ctx = build_request_context({"Accept-Language": "de-DE,de;q=0.9,en;q=0.8"}, remote_addr="1.2.3.4")
    assert declared_languages(ctx) == ["de-DE", "de", "en"]

    ctx = build_request_context({}, remote_addr="1.2.3.4", body={"language": "fr-CA"})
    assert declared_languages(ctx) == ["fr-CA"]


def test_run_signal_estimators_returns_five_in_fixed_order():
    ctx = build_request_context({}, remote_addr="1.2.3.4")
    signals = run_signal_estimators(ctx, UNKNOWN_RECORD)
    assert [s.algorithm_name for s in signals] == [
        "ip_geolocation",
        "network_infrastructure",
        "timezone_language",
        "connection_quality",
        "device_characteristics",
    ]
