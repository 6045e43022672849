"""
Interaction telemetry scoring and per-request session identifiers.
"""
import hashlib
from typing import List

from locus.models import BehaviorAnalysis, TrackingInfo
from locus.request_context import ClientMetadata, RequestContext

# (metadata attribute, points) for each reported interaction kind
INTERACTION_POINTS = (
    ("click_pattern", 20),
    ("scroll_behavior", 15),
    ("keyboard_events", 25),
    ("mouse_movement", 20),
)
ENGAGED_SCREEN_TIME_MS = 5000
ENGAGED_SCREEN_TIME_POINTS = 20
SHORT_SESSION_MS = 1000
SESSION_ID_LENGTH = 16


def interaction_score(metadata: ClientMetadata) -> int:
    score = sum(points for attr, points in INTERACTION_POINTS if getattr(metadata, attr))
    if metadata.screen_time_ms and metadata.screen_time_ms > ENGAGED_SCREEN_TIME_MS:
        score += ENGAGED_SCREEN_TIME_POINTS
    return min(100, score)


def behavior_flags(metadata: ClientMetadata) -> List[str]:
    flags = []
    if metadata.screen_time_ms and metadata.screen_time_ms < SHORT_SESSION_MS:
        flags.append("Very short session")
    if not metadata.mouse_movement and not metadata.click_pattern:
        flags.append("No user interaction detected")
    if metadata.rapid_clicks:
        flags.append("Rapid clicking detected")
    return flags


def analyze_behavior(metadata: ClientMetadata) -> BehaviorAnalysis:
    return BehaviorAnalysis(
        screen_time_ms=metadata.screen_time_ms,
        click_pattern=metadata.click_pattern,
        scroll_behavior=metadata.scroll_behavior,
        keyboard_events=metadata.keyboard_events,
        mouse_movement=metadata.mouse_movement,
        page_visibility=metadata.page_visibility,
        interaction_score=interaction_score(metadata),
        behavior_flags=behavior_flags(metadata),
    )


def session_id(context: RequestContext) -> str:
    """First 16 hex characters of the MD5 of user agent, socket address and request time."""
    components = [context.user_agent or "", context.remote_addr or "", str(context.timestamp_millis)]
    return hashlib.md5("|".join(components).encode("utf-8")).hexdigest()[:SESSION_ID_LENGTH]


def build_tracking(context: RequestContext) -> TrackingInfo:
    """
    Session block for one request.

    Args:
        context (RequestContext): Request being estimated.

    Returns:
        TrackingInfo: Session id, the client's tracking id and count (defaulting to
                      track_<request time> and 1), the referrer and behavior analysis.
    """
    metadata = context.metadata
    return TrackingInfo(
        session_id=session_id(context),
        tracking_id=metadata.tracking_id or f"track_{context.timestamp_millis}",
        tracking_count=metadata.tracking_count or 1,
        referrer=context.headers.get("referer") or None,
        user_behavior=analyze_behavior(metadata),
    )
