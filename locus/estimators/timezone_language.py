from typing import Dict, List, NamedTuple, Optional, Tuple

from rapidfuzz import fuzz

from locus.config import TIMEZONE_FUZZY_THRESHOLD
from locus.models import AccuracyBand, PartialLocation, SignalEstimate

ALGORITHM = "timezone_language"
PARTIAL_MATCH_PENALTY = 5
PRIMARY_LANGUAGE_BONUS = 10
SECONDARY_LANGUAGE_BONUS = 5
CONFIDENCE_CAP = 65


class TimezoneAnchor(NamedTuple):
    latitude: float
    longitude: float
    region: str
    confidence: int


TIMEZONE_COORDINATES: Dict[str, TimezoneAnchor] = {
    "America/New_York": TimezoneAnchor(40.7128, -74.0060, "US East Coast", 25),
    "America/Chicago": TimezoneAnchor(41.8781, -87.6298, "US Central", 23),
    "America/Denver": TimezoneAnchor(39.7392, -104.9903, "US Mountain", 22),
    "America/Phoenix": TimezoneAnchor(33.4484, -112.0740, "US Arizona", 21),
    "America/Los_Angeles": TimezoneAnchor(34.0522, -118.2437, "US West Coast", 25),
    "America/Anchorage": TimezoneAnchor(61.2181, -149.9003, "Alaska", 20),
    "America/Toronto": TimezoneAnchor(43.6532, -79.3832, "Eastern Canada", 23),
    "America/Vancouver": TimezoneAnchor(49.2827, -123.1207, "Western Canada", 22),
    "America/Mexico_City": TimezoneAnchor(19.4326, -99.1332, "Central Mexico", 22),
    "America/Sao_Paulo": TimezoneAnchor(-23.5505, -46.6333, "Southeast Brazil", 22),
    "America/Buenos_Aires": TimezoneAnchor(-34.6037, -58.3816, "Argentina", 21),
    "Europe/London": TimezoneAnchor(51.5074, -0.1278, "United Kingdom", 25),
    "Europe/Dublin": TimezoneAnchor(53.3498, -6.2603, "Ireland", 22),
    "Europe/Paris": TimezoneAnchor(48.8566, 2.3522, "France", 24),
    "Europe/Berlin": TimezoneAnchor(52.5200, 13.4050, "Germany", 24),
    "Europe/Madrid": TimezoneAnchor(40.4168, -3.7038, "Spain", 23),
    "Europe/Rome": TimezoneAnchor(41.9028, 12.4964, "Italy", 23),
    "Europe/Amsterdam": TimezoneAnchor(52.3676, 4.9041, "Netherlands", 23),
    "Europe/Stockholm": TimezoneAnchor(59.3293, 18.0686, "Sweden", 22),
    "Europe/Warsaw": TimezoneAnchor(52.2297, 21.0122, "Poland", 22),
    "Europe/Kyiv": TimezoneAnchor(50.4501, 30.5234, "Ukraine", 21),
    "Europe/Moscow": TimezoneAnchor(55.7558, 37.6173, "Western Russia", 22),
    "Asia/Dubai": TimezoneAnchor(25.2048, 55.2708, "United Arab Emirates", 23),
    "Asia/Kolkata": TimezoneAnchor(19.0760, 72.8777, "India", 22),
    "Asia/Singapore": TimezoneAnchor(1.3521, 103.8198, "Singapore", 25),
    "Asia/Hong_Kong": TimezoneAnchor(22.3193, 114.1694, "Hong Kong", 24),
    "Asia/Shanghai": TimezoneAnchor(31.2304, 121.4737, "China", 22),
    "Asia/Seoul": TimezoneAnchor(37.5665, 126.9780, "South Korea", 24),
    "Asia/Tokyo": TimezoneAnchor(35.6762, 139.6503, "Japan", 25),
    "Australia/Sydney": TimezoneAnchor(-33.8688, 151.2093, "Eastern Australia", 24),
    "Australia/Melbourne": TimezoneAnchor(-37.8136, 144.9631, "Victoria", 23),
    "Australia/Perth": TimezoneAnchor(-31.9505, 115.8605, "Western Australia", 22),
    "Pacific/Auckland": TimezoneAnchor(-36.8485, 174.7633, "New Zealand", 22),
    "Africa/Cairo": TimezoneAnchor(30.0444, 31.2357, "Egypt", 21),
    "Africa/Lagos": TimezoneAnchor(6.5244, 3.3792, "West Africa", 20),
    "Africa/Johannesburg": TimezoneAnchor(-26.2041, 28.0473, "South Africa", 21),
}

# Timezone prefix -> languages expected there (tag or primary subtag)
REGION_LANGUAGES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("America/", ("en-US", "es", "fr-CA", "pt-BR")),
    ("Europe/", ("en-GB", "de", "fr", "es", "it", "nl", "pl", "sv", "pt", "uk", "ru")),
    ("Asia/", ("zh", "ja", "ko", "hi", "en-IN", "ar")),
    ("Australia/", ("en-AU",)),
    ("Pacific/", ("en-NZ", "en-AU")),
    ("Africa/", ("en-ZA", "ar", "fr", "en-NG")),
)


def _city_segment(timezone: str) -> str:
    return timezone.rsplit("/", 1)[-1].replace("_", " ").lower()


def match_timezone(timezone: Optional[str]) -> Optional[Tuple[str, TimezoneAnchor, bool]]:
    """
    Resolve a timezone to a reference anchor.

    Returns:
        (matched key, anchor, exact) or None. Exact table hits come first; otherwise
        the city segment is compared against every key's city segment and the
        closest one at or above TIMEZONE_FUZZY_THRESHOLD wins.
    """
    if not timezone or "/" not in timezone:
        return None
    if timezone in TIMEZONE_COORDINATES:
        return timezone, TIMEZONE_COORDINATES[timezone], True

    city = _city_segment(timezone)
    best_key, best_score = None, 0.0
    for key in TIMEZONE_COORDINATES:
        score = fuzz.ratio(city, _city_segment(key))
        if score > best_score:
            best_key, best_score = key, score
    if best_key is not None and best_score >= TIMEZONE_FUZZY_THRESHOLD:
        return best_key, TIMEZONE_COORDINATES[best_key], False
    return None


def _language_matches(tag: str, allowed: Tuple[str, ...]) -> bool:
    tag = tag.split(";")[0].strip().lower()
    for entry in allowed:
        entry = entry.lower()
        if tag == entry or ("-" not in entry and tag.split("-")[0] == entry):
            return True
    return False


def language_bonus(timezone: str, languages: List[str]) -> int:
    """10 if the first declared language fits the timezone's region, 5 if a later one does."""
    allowed = next((langs for prefix, langs in REGION_LANGUAGES if timezone.startswith(prefix)), None)
    if not allowed or not languages:
        return 0
    if _language_matches(languages[0], allowed):
        return PRIMARY_LANGUAGE_BONUS
    if any(_language_matches(lang, allowed) for lang in languages[1:]):
        return SECONDARY_LANGUAGE_BONUS
    return 0


def estimate_from_timezone(timezone: Optional[str], languages: List[str]) -> SignalEstimate:
    """
    Correlate the declared timezone and languages with a reference location.

    Args:
        timezone (Optional[str]): IANA identifier declared by the client.
        languages (List[str]): Declared languages, most preferred first.

    Returns:
        SignalEstimate: Anchor confidence (20-25, minus 5 for a partial match)
                        plus up to 10 for a matching language, capped at 65.
    """
    matched = match_timezone(timezone)
    if matched is None:
        return SignalEstimate(
            algorithm_name=ALGORITHM,
            partial_location=PartialLocation(timezone=timezone) if timezone else PartialLocation(),
            confidence=0,
            accuracy_band=AccuracyBand.VERY_BROAD,
        )

    key, anchor, exact = matched
    confidence = anchor.confidence if exact else anchor.confidence - PARTIAL_MATCH_PENALTY
    confidence += language_bonus(timezone, languages)

    partial = PartialLocation(
        region=anchor.region,
        latitude=anchor.latitude,
        longitude=anchor.longitude,
        timezone=timezone,
        description=f"timezone reference {key}" + ("" if exact else " (partial match)"),
    )
    return SignalEstimate(
        algorithm_name=ALGORITHM,
        partial_location=partial,
        confidence=min(confidence, CONFIDENCE_CAP),
        accuracy_band=AccuracyBand.BROAD_REGIONAL,
    )
