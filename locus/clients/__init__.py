"""Client singletons for external API interactions."""
from locus.clients.geo_http_client import GeoHttpClient

__all__ = ["GeoHttpClient"]
