import asyncio
import ipaddress
from typing import List, Optional, Sequence

from loguru import logger

from locus.models import LocationRecord, ScoredRecord, UNKNOWN, is_known
from locus.providers import GeoProvider, default_providers

LOCAL_RECORD = LocationRecord(
    source_id="local",
    country="Local",
    region="Local",
    city="Local",
    timezone="Local",
    isp_name="Local Network",
    organization="Local Network",
)

UNKNOWN_RECORD = LocationRecord(
    source_id="none",
    country=UNKNOWN,
    region=UNKNOWN,
    city=UNKNOWN,
    timezone=UNKNOWN,
    isp_name=UNKNOWN,
    organization=UNKNOWN,
)

_LOCAL_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def is_local_ip(ip: str) -> bool:
    """
    True for loopback addresses and the 10/8 and 192.168/16 private ranges.
    Anything that does not parse as an address is not local.
    """
    try:
        addr = ipaddress.ip_address(ip.strip())
    except (ValueError, AttributeError):
        return False
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    if addr.is_loopback:
        return True
    return any(addr in net for net in _LOCAL_NETWORKS if addr.version == net.version)


def score_record(record: LocationRecord) -> int:
    """
    Completeness score in [0, 7]: one point each for country, region, city,
    timezone and ISP/organization, three for a full coordinate pair.
    """
    score = 0
    if is_known(record.country):
        score += 1
    if is_known(record.region):
        score += 1
    if is_known(record.city):
        score += 1
    if record.has_coordinates:
        score += 3
    if is_known(record.timezone):
        score += 1
    if is_known(record.isp_name) or is_known(record.organization):
        score += 1
    return score


def select_best(results: Sequence[Optional[LocationRecord]]) -> ScoredRecord:
    """
    Pick the strictly highest-scoring record. Ties keep the earliest record,
    so the outcome follows provider registration order. Records scoring 0
    carry nothing and never win over the Unknown placeholder.
    """
    best: Optional[ScoredRecord] = None
    for record in results:
        if record is None:
            continue
        score = score_record(record)
        if score > (best.score if best else 0):
            best = ScoredRecord(record=record, score=score)

    if best is None:
        return ScoredRecord(record=UNKNOWN_RECORD, score=score_record(UNKNOWN_RECORD))
    return best


async def resolve_location(
    ip: str,
    providers: Optional[List[GeoProvider]] = None,
) -> ScoredRecord:
    """
    Query every provider concurrently for one IP address and keep the most complete answer.

    Args:
        ip (str): Client IP address (IPv4 or IPv6 literal).
        providers (Optional[List[GeoProvider]]): Providers in registration order.
            Defaults to default_providers().

    Returns:
        ScoredRecord: Best record, the fixed Local record for loopback/private
                      addresses, or the Unknown record when nothing answered.
    """
    if is_local_ip(ip):
        logger.debug(f"🏠 {ip} is local, skipping providers")
        return ScoredRecord(record=LOCAL_RECORD, score=score_record(LOCAL_RECORD))

    if providers is None:
        providers = default_providers()

    logger.debug(f"🌍 Resolving {ip} across {len(providers)} providers")
    results = await asyncio.gather(
        *[provider.lookup(ip) for provider in providers],
        return_exceptions=True,
    )

    records: List[Optional[LocationRecord]] = []
    for provider, result in zip(providers, results):
        if isinstance(result, LocationRecord):
            records.append(result)
        elif isinstance(result, BaseException):
            # lookup() should never raise; keep the fan-in alive if one does
            logger.warning(f"⚠️ {provider.name} raised unexpectedly for {ip}: {result}")
            records.append(None)
        else:
            records.append(None)

    best = select_best(records)
    logger.debug(f"Selected {best.record.source_id} (score {best.score}) for {ip}")
    return best
