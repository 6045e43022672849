"""
Typed data models for the location estimation pipeline.
All value types passed between providers, estimators and the pipeline are defined here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from locus.errors import MalformedInputError

# Marker for providers that cannot tell "unknown" apart from "absent"
UNKNOWN = "Unknown"


def is_known(value: Optional[str]) -> bool:
    """True if a descriptive field carries a real value."""
    return bool(value) and value != UNKNOWN


def _check_pair(latitude: Optional[float], longitude: Optional[float]) -> None:
    if (latitude is None) != (longitude is None):
        raise MalformedInputError(
            f"latitude and longitude must be given together (got {latitude!r}, {longitude!r})"
        )


@dataclass(frozen=True)
class LocationRecord:
    """Normalized location returned by a provider."""
    source_id: str
    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    isp_name: Optional[str] = None
    organization: Optional[str] = None
    postal_code: Optional[str] = None

    def __post_init__(self):
        _check_pair(self.latitude, self.longitude)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
            "ispName": self.isp_name,
            "organization": self.organization,
            "postalCode": self.postal_code,
            "sourceId": self.source_id,
        }


@dataclass(frozen=True)
class ScoredRecord:
    """A LocationRecord with its completeness score (0-7)."""
    record: LocationRecord
    score: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["score"] = self.score
        return data


class AccuracyBand(str, Enum):
    """Qualitative reach of a single signal estimate."""
    CITY_REGION = "cityRegion"
    REGIONAL = "regional"
    BROAD_REGIONAL = "broadRegional"
    VERY_BROAD = "veryBroad"


@dataclass(frozen=True)
class PartialLocation:
    """Sparse subset of a LocationRecord produced by one estimator."""
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        _check_pair(self.latitude, self.longitude)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_empty(self) -> bool:
        return not any(v is not None for v in self.to_dict().values())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
            "description": self.description,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class SignalEstimate:
    """Output of one signal estimator. Confidence is capped per estimator."""
    algorithm_name: str
    partial_location: PartialLocation
    confidence: int
    accuracy_band: AccuracyBand

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithmName": self.algorithm_name,
            "partialLocation": self.partial_location.to_dict(),
            "confidence": self.confidence,
            "accuracyBand": self.accuracy_band.value,
        }


@dataclass(frozen=True)
class StealthEstimate:
    """Blended, permission-free location guess."""
    confidence: int
    accuracy_band: str
    source_description: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "country": self.country,
            "region": self.region,
            "city": self.city,
            "confidence": self.confidence,
            "accuracyBand": self.accuracy_band,
            "sourceDescription": self.source_description,
        }


@dataclass(frozen=True)
class Coordinate:
    """A timestamped point. Out-of-range values are rejected, never clamped."""
    latitude: float
    longitude: float
    timestamp_millis: int

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise MalformedInputError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise MalformedInputError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestampMillis": self.timestamp_millis,
        }


class MovementType(str, Enum):
    STATIONARY = "stationary"
    WALKING = "walking"
    CYCLING = "cycling"
    DRIVING = "driving"
    HIGH_SPEED = "highSpeed"


@dataclass(frozen=True)
class MovementResult:
    distance_meters: float
    time_delta_millis: int
    speed_kmh: float
    bearing_degrees: float
    movement_type: MovementType
    is_significant: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distanceMeters": self.distance_meters,
            "timeDeltaMillis": self.time_delta_millis,
            "speedKmh": self.speed_kmh,
            "bearingDegrees": self.bearing_degrees,
            "movementType": self.movement_type.value,
            "isSignificant": self.is_significant,
        }


@dataclass(frozen=True)
class LocationComparison:
    """Agreement between a browser-supplied fix and the IP-derived coordinate."""
    distance_meters: float
    agreement: str
    gps_quality: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distanceMeters": self.distance_meters,
            "agreement": self.agreement,
            "gpsQuality": self.gps_quality,
        }


@dataclass(frozen=True)
class Fingerprint:
    """
    Digest of declared client attributes.

    uniqueness_score is an entropy heuristic only; two clients with the same
    declared attributes share a fingerprint.
    """
    hash_hex: str
    presence_flags: Dict[str, bool]
    confidence_percent: int
    uniqueness_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hashHex": self.hash_hex,
            "presenceFlags": dict(self.presence_flags),
            "confidencePercent": self.confidence_percent,
            "uniquenessScore": self.uniqueness_score,
        }


@dataclass(frozen=True)
class SecurityAssessment:
    """Heuristic request-level flags. VPN and Tor checks are pattern stubs."""
    is_proxy: bool
    proxy_headers: List[str]
    proxy_type: str
    is_bot: bool
    bot_type: Optional[str]
    vpn_indicators: List[str]
    is_tor: bool
    suspicious_headers: List[str]
    threat_score: int
    threat_level: str
    threat_reasons: List[str]
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proxy": {
                "isProxy": self.is_proxy,
                "detectedHeaders": list(self.proxy_headers),
                "confidence": min(100, len(self.proxy_headers) * 30),
                "type": self.proxy_type,
            },
            "bot": {"isBot": self.is_bot, "type": self.bot_type},
            "vpn": {
                "likely": bool(self.vpn_indicators),
                "indicators": list(self.vpn_indicators),
                "heuristicOnly": True,
            },
            "tor": {
                "isTor": self.is_tor,
                "note": "Tor detection requires exit node database",
            },
            "suspiciousHeaders": list(self.suspicious_headers),
            "threat": {
                "score": self.threat_score,
                "level": self.threat_level,
                "reasons": list(self.threat_reasons),
                "recommendation": self.recommendation,
            },
        }


@dataclass(frozen=True)
class BehaviorAnalysis:
    """Client-reported interaction telemetry with a derived engagement score."""
    screen_time_ms: Optional[float]
    click_pattern: Any
    scroll_behavior: Any
    keyboard_events: Any
    mouse_movement: Any
    page_visibility: Any
    interaction_score: int
    behavior_flags: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenTime": self.screen_time_ms,
            "clickPattern": self.click_pattern,
            "scrollBehavior": self.scroll_behavior,
            "keyboardEvents": self.keyboard_events,
            "mouseMovement": self.mouse_movement,
            "pageVisibility": self.page_visibility,
            "interactionScore": self.interaction_score,
            "behaviorFlags": list(self.behavior_flags),
        }


@dataclass(frozen=True)
class TrackingInfo:
    """Per-request session identifiers. Nothing here is remembered between requests."""
    session_id: str
    tracking_id: str
    tracking_count: int
    referrer: Optional[str]
    user_behavior: BehaviorAnalysis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "trackingId": self.tracking_id,
            "trackingCount": self.tracking_count,
            "referrer": self.referrer,
            "userBehavior": self.user_behavior.to_dict(),
        }


@dataclass(frozen=True)
class CompositeResult:
    """Everything the pipeline produced for one request."""
    timestamp_millis: int
    ip: str
    location: ScoredRecord
    stealth: StealthEstimate
    signals: List[SignalEstimate]
    fingerprint: Fingerprint
    security: SecurityAssessment
    current: Optional[Coordinate] = None
    movement: Optional[MovementResult] = None
    location_comparison: Optional[LocationComparison] = None
    tracking: Optional[TrackingInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestampMillis": self.timestamp_millis,
            "ip": self.ip,
            "location": self.location.to_dict(),
            "stealth": self.stealth.to_dict(),
            "signals": [s.to_dict() for s in self.signals],
            "fingerprint": self.fingerprint.to_dict(),
            "security": self.security.to_dict(),
            "current": self.current.to_dict() if self.current else None,
            "movement": self.movement.to_dict() if self.movement else None,
            "locationComparison": (
                self.location_comparison.to_dict() if self.location_comparison else None
            ),
            "tracking": self.tracking.to_dict() if self.tracking else None,
        }
