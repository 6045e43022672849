"""External geolocation data sources."""
from locus.providers.base import GeoProvider
from locus.providers.geo_providers import (
    IpapiCoProvider,
    IpinfoProvider,
    IpApiComProvider,
    IpwhoisProvider,
    default_providers,
)

__all__ = [
    "GeoProvider",
    "IpapiCoProvider",
    "IpinfoProvider",
    "IpApiComProvider",
    "IpwhoisProvider",
    "default_providers",
]
