"""
Concrete IP geolocation providers. Each one normalizes its JSON body into a LocationRecord.
"""
from typing import Any, Dict, List, Optional

from locus.clients import GeoHttpClient
from locus.config import (
    IPAPI_CO_URL,
    IPINFO_TOKEN,
    IPINFO_URL,
    IP_API_COM_URL,
    IPWHOIS_URL,
)
from locus.errors import ProviderUnavailable
from locus.models import LocationRecord
from locus.providers.base import GeoProvider, text_or_none, text_or_unknown


class IpapiCoProvider(GeoProvider):
    name = "ipapi.co"

    async def fetch(self, ip: str) -> Optional[LocationRecord]:
        data = await GeoHttpClient().get_json(IPAPI_CO_URL.format(ip=ip), timeout_s=self.timeout_ms / 1000.0)
        if data.get("error"):
            raise ProviderUnavailable(data.get("reason") or "ipapi.co reported an error")
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> LocationRecord:
        return self._record(
            data.get("latitude"),
            data.get("longitude"),
            country=text_or_unknown(data.get("country_name")),
            region=text_or_unknown(data.get("region")),
            city=text_or_unknown(data.get("city")),
            timezone=text_or_none(data.get("timezone")),
            isp_name=text_or_none(data.get("org")),
            organization=text_or_none(data.get("org")),
            postal_code=text_or_none(data.get("postal")),
        )


class IpinfoProvider(GeoProvider):
    name = "ipinfo.io"

    def __init__(self, token: Optional[str] = IPINFO_TOKEN, **kwargs):
        super().__init__(**kwargs)
        self.token = token

    async def fetch(self, ip: str) -> Optional[LocationRecord]:
        params = {"token": self.token} if self.token else None
        data = await GeoHttpClient().get_json(
            IPINFO_URL.format(ip=ip), params=params, timeout_s=self.timeout_ms / 1000.0
        )
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> Optional[LocationRecord]:
        loc = data.get("loc")
        if not loc or "," not in str(loc):
            return None
        lat, lon = str(loc).split(",", 1)
        return self._record(
            lat,
            lon,
            country=text_or_unknown(data.get("country")),
            region=text_or_unknown(data.get("region")),
            city=text_or_unknown(data.get("city")),
            timezone=text_or_none(data.get("timezone")),
            isp_name=text_or_none(data.get("org")),
            organization=text_or_none(data.get("org")),
            postal_code=text_or_none(data.get("postal")),
        )


class IpApiComProvider(GeoProvider):
    name = "ip-api.com"
    FIELDS = "status,message,country,regionName,city,zip,lat,lon,timezone,isp,org"

    async def fetch(self, ip: str) -> Optional[LocationRecord]:
        data = await GeoHttpClient().get_json(
            IP_API_COM_URL.format(ip=ip), params={"fields": self.FIELDS}, timeout_s=self.timeout_ms / 1000.0
        )
        if data.get("status") == "fail":
            raise ProviderUnavailable(data.get("message") or "ip-api.com reported a failure")
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> LocationRecord:
        return self._record(
            data.get("lat"),
            data.get("lon"),
            country=text_or_unknown(data.get("country")),
            region=text_or_unknown(data.get("regionName")),
            city=text_or_unknown(data.get("city")),
            timezone=text_or_none(data.get("timezone")),
            # ip-api.com sends "" for both unknown and missing ISPs
            isp_name=text_or_unknown(data.get("isp")),
            organization=text_or_none(data.get("org")),
            postal_code=text_or_none(data.get("zip")),
        )


class IpwhoisProvider(GeoProvider):
    name = "ipwho.is"

    async def fetch(self, ip: str) -> Optional[LocationRecord]:
        data = await GeoHttpClient().get_json(IPWHOIS_URL.format(ip=ip), timeout_s=self.timeout_ms / 1000.0)
        if data.get("success") is False:
            raise ProviderUnavailable(data.get("message") or "ipwho.is reported a failure")
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> LocationRecord:
        timezone = data.get("timezone") or {}
        connection = data.get("connection") or {}
        return self._record(
            data.get("latitude"),
            data.get("longitude"),
            country=text_or_unknown(data.get("country")),
            region=text_or_unknown(data.get("region")),
            city=text_or_unknown(data.get("city")),
            timezone=text_or_none(timezone.get("id") if isinstance(timezone, dict) else timezone),
            isp_name=text_or_none(connection.get("isp")),
            organization=text_or_none(connection.get("org")),
            postal_code=text_or_none(data.get("postal")),
        )


def default_providers() -> List[GeoProvider]:
    """Providers in registration order. Ties in scoring go to the earlier entry."""
    return [IpapiCoProvider(), IpinfoProvider(), IpApiComProvider(), IpwhoisProvider()]
