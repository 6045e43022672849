import pytest

from locus.errors import MalformedInputError
from locus.request_context import (
    ClientMetadata,
    build_request_context,
    extract_client_ip,
    normalize_headers,
)


def test_normalize_headers_lowercases_and_joins():
    headers = normalize_headers({"User-Agent": "UA", "X-Forwarded-For": ["1.1.1.1", "2.2.2.2"], "X-Empty": None})
    assert headers == {"user-agent": "UA", "x-forwarded-for": "1.1.1.1, 2.2.2.2"}


def test_forwarded_for_uses_first_hop():
    headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1"}
    assert extract_client_ip(headers, "10.0.0.2") == "203.0.113.5"


def test_header_priority_and_unknown_values():
    headers = {"x-client-ip": "198.51.100.1", "x-forwarded-for": "203.0.113.5"}
    assert extract_client_ip(headers) == "198.51.100.1"
    headers = {"x-forwarded-for": "unknown", "x-real-ip": "192.0.2.44"}
    assert extract_client_ip(headers) == "192.0.2.44"


def test_socket_address_then_loopback_fallback():
    assert extract_client_ip({}, "192.0.2.10") == "192.0.2.10"
    assert extract_client_ip({}) == "127.0.0.1"


def test_demo_mode_substitutes_public_address():
    ctx = build_request_context({"X-Demo-Mode": "true", "X-Forwarded-For": "10.0.0.4"})
    assert ctx.ip == "8.8.8.8"


def test_metadata_reads_nested_connection_and_languages():
    metadata = ClientMetadata.from_dict({
        "timezone": "Asia/Tokyo",
        "languages": "ja-JP, en-US",
        "hardwareConcurrency": "12",
        "deviceMemory": "lots",
        "colorDepth": True,
        "connection": {"downlink": 50, "rtt": 25, "effectiveType": "4g"},
    })
    assert metadata.timezone == "Asia/Tokyo"
    assert metadata.languages == ["ja-JP", "en-US"]
    assert metadata.hardware_concurrency == 12.0
    assert metadata.device_memory is None
    assert metadata.color_depth is None
    assert (metadata.downlink_mbps, metadata.rtt_ms, metadata.effective_type) == (50.0, 25.0, "4g")


def test_metadata_reads_flat_connection_keys():
    metadata = ClientMetadata.from_dict({"downlink": 10, "rtt": 150, "effectiveType": "3g"})
    assert metadata.downlink_mbps == 10.0
    assert metadata.effective_type == "3g"


def test_empty_body_yields_empty_metadata():
    assert ClientMetadata.from_dict(None) == ClientMetadata()
    assert ClientMetadata.from_dict({}) == ClientMetadata()


def test_browser_location_defaults_timestamp_to_request_time():
    metadata = ClientMetadata.from_dict(
        {"browserLocation": {"latitude": 48.85, "longitude": 2.35, "accuracy": 12}},
        now_ms=1_700_000_000_000,
    )
    assert metadata.browser_location.latitude == 48.85
    assert metadata.browser_location.timestamp_millis == 1_700_000_000_000
    assert metadata.browser_accuracy_m == 12.0


def test_half_browser_location_is_ignored():
    metadata = ClientMetadata.from_dict({"browserLocation": {"latitude": 48.85}})
    assert metadata.browser_location is None


def test_out_of_range_coordinates_are_rejected():
    with pytest.raises(MalformedInputError):
        build_request_context({}, remote_addr="192.0.2.1", body={"previousLocation": {"latitude": 95, "longitude": 0}})


def test_context_exposes_common_headers():
    ctx = build_request_context(
        {"User-Agent": " Mozilla/5.0 ", "Accept-Language": "en", "Accept-Encoding": ""},
        remote_addr="192.0.2.1",
        now_ms=42,
    )
    assert ctx.user_agent == "Mozilla/5.0"
    assert ctx.accept_language == "en"
    assert ctx.accept_encoding is None
    assert ctx.timestamp_millis == 42


@pytest.mark.parametrize("timestamp", ["Infinity", "-Infinity", 1e400, "nan"])
def test_non_finite_timestamp_falls_back_to_request_time(timestamp):
    ctx = build_request_context(
        {},
        remote_addr="8.8.8.8",
        body={"previousLocation": {"latitude": 1.0, "longitude": 2.0, "timestamp": timestamp}},
        now_ms=5_000,
    )
    assert ctx.metadata.previous_location.timestamp_millis == 5_000


def test_non_finite_coordinates_and_numbers_are_dropped():
    metadata = ClientMetadata.from_dict({
        "browserLocation": {"latitude": "Infinity", "longitude": 2.0},
        "deviceMemory": float("inf"),
        "connection": {"rtt": "-inf"},
    })
    assert metadata.browser_location is None
    assert metadata.device_memory is None
    assert metadata.rtt_ms is None
