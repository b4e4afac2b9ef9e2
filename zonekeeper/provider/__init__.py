"""DNS provider synchronization engine and backends."""

from zonekeeper.provider.cloudflare import CloudflareClient
from zonekeeper.provider.client import DNSClient
from zonekeeper.provider.digitalocean import DigitalOceanClient
from zonekeeper.provider.domain_filter import DomainFilter
from zonekeeper.provider.provider import DNSProvider, record_id, suitable_zone

__all__ = [
    "CloudflareClient",
    "DNSClient",
    "DNSProvider",
    "DigitalOceanClient",
    "DomainFilter",
    "record_id",
    "suitable_zone",
]
