import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from locus.config import DEMO_IP
from locus.errors import MalformedInputError
from locus.models import Coordinate

# Checked in order; x-forwarded-for contributes its first hop only
CLIENT_IP_HEADERS = [
    "x-client-ip",
    "x-forwarded-for",
    "cf-connecting-ip",
    "fastly-client-ip",
    "true-client-ip",
    "x-real-ip",
    "x-cluster-client-ip",
]


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coordinate(value: Any, default_ts: int) -> Optional[Coordinate]:
    """
    Parse a {latitude, longitude, timestamp} document. Missing values yield None;
    present but out-of-range values raise MalformedInputError.
    """
    if not isinstance(value, Mapping):
        return None
    lat = _number(value.get("latitude"))
    lon = _number(value.get("longitude"))
    if lat is None or lon is None:
        return None
    ts = _number(value.get("timestamp"))
    return Coordinate(latitude=lat, longitude=lon, timestamp_millis=int(ts) if ts is not None else default_ts)


@dataclass(frozen=True)
class ClientMetadata:
    """Optional values declared by the client (screen, locale, hardware, network)."""
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None
    languages: List[str] = field(default_factory=list)
    color_depth: Optional[float] = None
    pixel_ratio: Optional[float] = None
    hardware_concurrency: Optional[float] = None
    device_memory: Optional[float] = None
    downlink_mbps: Optional[float] = None
    rtt_ms: Optional[float] = None
    effective_type: Optional[str] = None
    browser_location: Optional[Coordinate] = None
    browser_accuracy_m: Optional[float] = None
    previous_location: Optional[Coordinate] = None
    # Interaction telemetry, reported back verbatim
    screen_time_ms: Optional[float] = None
    click_pattern: Any = None
    scroll_behavior: Any = None
    keyboard_events: Any = None
    mouse_movement: Any = None
    page_visibility: Any = None
    rapid_clicks: bool = False
    tracking_id: Optional[str] = None
    tracking_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], now_ms: Optional[int] = None) -> "ClientMetadata":
        """
        Build metadata from the client's camelCase document. Unparseable numbers
        are dropped. Coordinates outside their valid range raise MalformedInputError.
        """
        if not data:
            return cls()
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)

        connection = data.get("connection")
        if not isinstance(connection, Mapping):
            connection = data

        languages = data.get("languages") or []
        if isinstance(languages, str):
            languages = languages.split(",")
        languages = [lang for lang in (_text(x) for x in languages) if lang]

        browser = data.get("browserLocation")
        accuracy = _number(browser.get("accuracy")) if isinstance(browser, Mapping) else None
        count = _number(data.get("trackingCount"))

        return cls(
            screen_resolution=_text(data.get("screenResolution")),
            timezone=_text(data.get("timezone")),
            language=_text(data.get("language")),
            languages=languages,
            color_depth=_number(data.get("colorDepth")),
            pixel_ratio=_number(data.get("pixelRatio")),
            hardware_concurrency=_number(data.get("hardwareConcurrency")),
            device_memory=_number(data.get("deviceMemory")),
            downlink_mbps=_number(connection.get("downlink")),
            rtt_ms=_number(connection.get("rtt")),
            effective_type=_text(connection.get("effectiveType")),
            browser_location=_coordinate(browser, now_ms),
            browser_accuracy_m=accuracy,
            previous_location=_coordinate(data.get("previousLocation"), now_ms),
            screen_time_ms=_number(data.get("screenTime")),
            click_pattern=data.get("clickPattern") or None,
            scroll_behavior=data.get("scrollBehavior") or None,
            keyboard_events=data.get("keyboardEvents") or None,
            mouse_movement=data.get("mouseMovement") or None,
            page_visibility=data.get("pageVisibility") or None,
            rapid_clicks=bool(data.get("rapidClicks")),
            tracking_id=_text(data.get("trackingId")),
            tracking_count=int(count) if count is not None else None,
        )


@dataclass(frozen=True)
class RequestContext:
    """Immutable per-request input shared by the aggregator and every estimator."""
    ip: str
    headers: Dict[str, str]
    metadata: ClientMetadata
    timestamp_millis: int
    remote_addr: Optional[str] = None

    @property
    def user_agent(self) -> Optional[str]:
        return _text(self.headers.get("user-agent"))

    @property
    def accept_language(self) -> Optional[str]:
        return _text(self.headers.get("accept-language"))

    @property
    def accept_encoding(self) -> Optional[str]:
        return _text(self.headers.get("accept-encoding"))


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Lower-case header names; multi-valued headers are joined with commas."""
    normalized: Dict[str, str] = {}
    for name, value in (headers or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        normalized[str(name).lower()] = str(value)
    return normalized


def extract_client_ip(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> str:
    """
    Resolve the client address from forwarding headers, then the socket address.

    Args:
        headers: Lower-cased request headers.
        remote_addr: Peer address reported by the server socket, if any.

    Returns:
        str: Best client IP, DEMO_IP in demo mode, or 127.0.0.1 as a last resort.
    """
    if headers.get("x-demo-mode", "").lower() == "true":
        return DEMO_IP

    for name in CLIENT_IP_HEADERS:
        value = _text(headers.get(name))
        if not value:
            continue
        first = value.split(",")[0].strip()
        if first and first.lower() != "unknown":
            return first

    return _text(remote_addr) or "127.0.0.1"


def build_request_context(
    headers: Optional[Mapping[str, Any]],
    remote_addr: Optional[str] = None,
    body: Optional[Mapping[str, Any]] = None,
    now_ms: Optional[int] = None,
) -> RequestContext:
    """
    Assemble the immutable context for one request.

    Args:
        headers: Raw request headers in any case.
        remote_addr: Peer address from the socket.
        body: Client-declared metadata document, if the request carried one.
        now_ms: Request time in epoch milliseconds. Defaults to now.

    Returns:
        RequestContext: Context consumed by the pipeline.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    normalized = normalize_headers(headers)
    ip = extract_client_ip(normalized, remote_addr)
    try:
        metadata = ClientMetadata.from_dict(body, now_ms=now_ms)
    except MalformedInputError:
        logger.warning(f"⚠️ Rejected client coordinates from {ip}")
        raise
    return RequestContext(
        ip=ip,
        headers=normalized,
        metadata=metadata,
        timestamp_millis=now_ms,
        remote_addr=_text(remote_addr),
    )
