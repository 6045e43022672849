from typing import List, Mapping, NamedTuple, Optional, Tuple

from locus.models import (
    AccuracyBand,
    LocationRecord,
    PartialLocation,
    SignalEstimate,
    is_known,
)

ALGORITHM = "network_infrastructure"
UNMATCHED_FLOOR = 5
ROUTING_POINTS_PER_HEADER = 5
ROUTING_CAP = 15
CONFIDENCE_CAP = 50


class IspHint(NamedTuple):
    region: str
    country: Optional[str]
    bonus: int


# Lower-case substring of the ISP/organization name -> hint. First match wins.
ISP_REGIONS: Tuple[Tuple[str, IspHint], ...] = (
    ("comcast", IspHint("North America", "United States", 18)),
    ("verizon", IspHint("North America", "United States", 18)),
    ("at&t", IspHint("North America", "United States", 18)),
    ("charter", IspHint("North America", "United States", 17)),
    ("spectrum", IspHint("North America", "United States", 17)),
    ("cox communications", IspHint("North America", "United States", 17)),
    ("centurylink", IspHint("North America", "United States", 16)),
    ("rogers", IspHint("North America", "Canada", 18)),
    ("bell canada", IspHint("North America", "Canada", 18)),
    ("telmex", IspHint("Latin America", "Mexico", 17)),
    ("british telecommunications", IspHint("Western Europe", "United Kingdom", 18)),
    ("virgin media", IspHint("Western Europe", "United Kingdom", 18)),
    ("sky broadband", IspHint("Western Europe", "United Kingdom", 17)),
    ("deutsche telekom", IspHint("Western Europe", "Germany", 20)),
    ("orange", IspHint("Western Europe", "France", 16)),
    ("free sas", IspHint("Western Europe", "France", 17)),
    ("telefonica", IspHint("Southern Europe", "Spain", 16)),
    ("swisscom", IspHint("Western Europe", "Switzerland", 19)),
    ("vodafone", IspHint("Europe", None, 15)),
    ("rostelecom", IspHint("Eastern Europe", "Russia", 18)),
    ("ntt", IspHint("East Asia", "Japan", 17)),
    ("kddi", IspHint("East Asia", "Japan", 18)),
    ("korea telecom", IspHint("East Asia", "South Korea", 18)),
    ("china telecom", IspHint("East Asia", "China", 18)),
    ("china unicom", IspHint("East Asia", "China", 18)),
    ("reliance jio", IspHint("South Asia", "India", 18)),
    ("bharti airtel", IspHint("South Asia", "India", 17)),
    ("telstra", IspHint("Oceania", "Australia", 18)),
    ("google", IspHint("Global (Google infrastructure)", None, 15)),
    ("amazon", IspHint("Global (AWS infrastructure)", None, 15)),
    ("microsoft", IspHint("Global (Azure infrastructure)", None, 15)),
    ("cloudflare", IspHint("Global (Cloudflare edge)", None, 15)),
)

# Header names that only appear when a CDN or edge network routed the request
CDN_HEADERS = (
    "cf-ray",
    "cf-connecting-ip",
    "cf-ipcountry",
    "x-amz-cf-id",
    "x-amz-cf-pop",
    "fastly-client-ip",
    "x-fastly-request-id",
    "akamai-origin-hop",
    "x-akamai-edgescape",
    "x-azure-ref",
    "x-served-by",
    "x-cache",
    "via",
)


def match_isp(name: Optional[str]) -> Optional[IspHint]:
    """Case-insensitive substring lookup of an ISP or organization name."""
    if not is_known(name):
        return None
    lowered = name.lower()
    for needle, hint in ISP_REGIONS:
        if needle in lowered:
            return hint
    return None


def routing_headers(headers: Mapping[str, str]) -> List[str]:
    return [h for h in CDN_HEADERS if headers.get(h)]


def estimate_from_network(record: LocationRecord, headers: Mapping[str, str]) -> SignalEstimate:
    """
    Infer a broad region from the ISP/organization name and CDN routing headers.

    Args:
        record (LocationRecord): Best provider record (source of ISP/organization).
        headers (Mapping[str, str]): Lower-cased request headers.

    Returns:
        SignalEstimate: ISP bonus (15-20) or a floor of 5, plus up to 15 for
                        routing headers, capped at 50.
    """
    hint = match_isp(record.isp_name) or match_isp(record.organization)
    confidence = hint.bonus if hint else UNMATCHED_FLOOR

    seen = routing_headers(headers)
    confidence += min(len(seen) * ROUTING_POINTS_PER_HEADER, ROUTING_CAP)

    # cf-ipcountry is a two-letter code assigned by Cloudflare's edge
    edge_country = headers.get("cf-ipcountry", "").strip().upper() or None
    if edge_country in ("XX", "T1"):
        edge_country = None

    description = None
    if seen:
        description = f"routed via {', '.join(seen)}"

    partial = PartialLocation(
        country=(hint.country if hint and hint.country else edge_country),
        region=hint.region if hint else None,
        description=description,
    )
    return SignalEstimate(
        algorithm_name=ALGORITHM,
        partial_location=partial,
        confidence=min(confidence, CONFIDENCE_CAP),
        accuracy_band=AccuracyBand.BROAD_REGIONAL if hint else AccuracyBand.VERY_BROAD,
    )
