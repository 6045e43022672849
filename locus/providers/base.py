"""
Base class for a single external geolocation source.
"""
import asyncio
import time
from typing import Any, Optional

from loguru import logger

from locus.config import PROVIDER_TIMEOUT_MS
from locus.models import LocationRecord, UNKNOWN


def coerce_coordinate(value: Any) -> Optional[float]:
    """Accept numbers or numeric strings; anything else is absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return round(float(value), 6)
    except (TypeError, ValueError):
        return None


def text_or_unknown(value: Any) -> str:
    """Descriptive field where the source cannot distinguish unknown from absent."""
    if value is None:
        return UNKNOWN
    text = str(value).strip()
    return text or UNKNOWN


def text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class GeoProvider:
    """
    One remote lookup with a hard per-call timeout.

    Subclasses implement fetch(), which may raise anything. lookup() converts
    every failure, including timeouts, into None.
    """
    name = "provider"

    def __init__(self, timeout_ms: int = PROVIDER_TIMEOUT_MS):
        self.timeout_ms = timeout_ms

    async def fetch(self, ip: str) -> Optional[LocationRecord]:
        raise NotImplementedError

    async def lookup(self, ip: str) -> Optional[LocationRecord]:
        """
        Query this provider for one IP address.

        Args:
            ip (str): IPv4 or IPv6 literal.

        Returns:
            Optional[LocationRecord]: Normalized record, or None on any failure or timeout.
        """
        start = time.perf_counter()
        try:
            record = await asyncio.wait_for(self.fetch(ip), timeout=self.timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            logger.warning(f"⏱️ {self.name} timed out for {ip} after {self.timeout_ms}ms")
            return None
        except Exception as e:
            logger.warning(f"⚠️ {self.name} failed for {ip}: {e}")
            return None

        duration = time.perf_counter() - start
        if record is None:
            logger.debug(f"{self.name} returned no result for {ip} in {duration:.2f}s")
        else:
            logger.debug(f"✅ {self.name} answered for {ip} in {duration:.2f}s")
        return record

    def _record(self, latitude: Any, longitude: Any, **fields: Any) -> LocationRecord:
        """Build a record, dropping a coordinate pair when either half is unusable."""
        lat = coerce_coordinate(latitude)
        lon = coerce_coordinate(longitude)
        if lat is None or lon is None or not -90 <= lat <= 90 or not -180 <= lon <= 180:
            lat = lon = None
        return LocationRecord(source_id=self.name, latitude=lat, longitude=lon, **fields)
