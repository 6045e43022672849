import hashlib

import pytest

from locus.behavior import analyze_behavior, behavior_flags, build_tracking, interaction_score, session_id
from locus.request_context import ClientMetadata, build_request_context


def test_every_interaction_kind_scores():
    metadata = ClientMetadata(
        click_pattern="steady",
        scroll_behavior={"depth": 0.8},
        keyboard_events=12,
        mouse_movement=True,
        screen_time_ms=6000,
    )
    assert interaction_score(metadata) == 100


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"click_pattern": "x"}, 20),
        ({"scroll_behavior": "x"}, 15),
        ({"keyboard_events": 4}, 25),
        ({"mouse_movement": True}, 20),
        ({"screen_time_ms": 5001}, 20),
        ({"screen_time_ms": 5000}, 0),
        ({}, 0),
    ],
)
def test_interaction_points(fields, expected):
    assert interaction_score(ClientMetadata(**fields)) == expected


def test_idle_short_session_flags():
    metadata = ClientMetadata(screen_time_ms=400, rapid_clicks=True)
    assert behavior_flags(metadata) == [
        "Very short session",
        "No user interaction detected",
        "Rapid clicking detected",
    ]


def test_engaged_session_has_no_flags():
    metadata = ClientMetadata(screen_time_ms=30_000, mouse_movement=True)
    assert behavior_flags(metadata) == []


def test_telemetry_is_parsed_from_client_document():
    metadata = ClientMetadata.from_dict({
        "screenTime": "2500",
        "clickPattern": "",
        "keyboardEvents": 7,
        "pageVisibility": "visible",
        "rapidClicks": 1,
        "trackingId": " track_1 ",
        "trackingCount": "4",
    })
    analysis = analyze_behavior(metadata)
    assert analysis.screen_time_ms == 2500.0
    assert analysis.click_pattern is None
    assert analysis.page_visibility == "visible"
    assert analysis.interaction_score == 25
    assert "Rapid clicking detected" in analysis.behavior_flags
    assert (metadata.tracking_id, metadata.tracking_count) == ("track_1", 4)


def test_session_id_is_md5_prefix_of_agent_address_and_time():
    ctx = build_request_context({"User-Agent": "Mozilla/5.0"}, remote_addr="203.0.113.4", now_ms=1234)
    expected = hashlib.md5(b"Mozilla/5.0|203.0.113.4|1234").hexdigest()[:16]
    assert session_id(ctx) == expected

    later = build_request_context({"User-Agent": "Mozilla/5.0"}, remote_addr="203.0.113.4", now_ms=1235)
    assert session_id(later) != expected


def test_tracking_defaults_without_client_values():
    ctx = build_request_context({}, now_ms=777)
    tracking = build_tracking(ctx)
    assert tracking.tracking_id == "track_777"
    assert tracking.tracking_count == 1
    assert tracking.referrer is None
    assert tracking.session_id == hashlib.md5(b"||777").hexdigest()[:16]
