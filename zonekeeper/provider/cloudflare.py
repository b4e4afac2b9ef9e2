"""
Cloudflare client module for Zonekeeper.

This module is responsible for interfacing with the Cloudflare API. It exposes the
zone and DNS record endpoints page by page so the engine can walk them itself.
"""

import logging
from typing import Any, List, Optional, Tuple

import cloudflare

from zonekeeper.models.models import ProviderRecord, RecordID, Zone, normalize_name
from zonekeeper.provider.errors import CredentialError, ProviderAPIError

# Cloudflare's value for "automatic" TTL
AUTO_TTL = 1


class CloudflareClient:
    """
    DNSClient backed by the Cloudflare SDK. Cursors are page numbers.
    """

    def __init__(
        self,
        api_token: str,
        page_size: int = 100,
        max_retries: int = 2,
        cf: Optional[cloudflare.Cloudflare] = None,
    ):
        """
        Initialize a CloudflareClient.

        Args:
            api_token: Cloudflare API token
            page_size: Number of items requested per page
            max_retries: Retries the SDK performs on transient failures
            cf: Preconfigured SDK client, mostly for tests

        Raises:
            CredentialError: No API token was given
        """
        if not api_token:
            raise CredentialError("no Cloudflare API token provided")
        self.page_size = page_size
        self.logger = logging.getLogger("zonekeeper.provider.cloudflare")
        self.cf = cf or cloudflare.Cloudflare(api_token=api_token, max_retries=max_retries)

    def list_zones(self, cursor: Optional[Any]) -> Tuple[List[Zone], Optional[Any]]:
        page_number = cursor or 1
        self.logger.debug(f"Fetching zones page {page_number} from Cloudflare API...")
        try:
            page = self.cf.zones.list(page=page_number, per_page=self.page_size)
        except cloudflare.CloudflareError as e:
            raise self._api_error("fetching zones", e) from e

        zones = []
        for zone in page.result:
            zone_name = getattr(zone, "name", None)
            zone_id = getattr(zone, "id", None)
            if not zone_name or not zone_id:
                self.logger.warning(f"Skipping zone object due to missing name or id: {zone}")
                continue
            zones.append(Zone(name=zone_name, id=zone_id))

        return zones, self._next_cursor(page, page_number)

    def list_records(
        self, zone: Zone, cursor: Optional[Any]
    ) -> Tuple[List[ProviderRecord], Optional[Any]]:
        page_number = cursor or 1
        try:
            page = self.cf.dns.records.list(
                zone_id=zone.id, page=page_number, per_page=self.page_size
            )
        except cloudflare.CloudflareError as e:
            raise self._api_error(f"fetching records for zone {zone.name}", e) from e

        records = []
        for record in page.result:
            record_type = getattr(record, "type", None)
            record_name = getattr(record, "name", None)
            if not record_type or not record_name:
                self.logger.warning(f"Skipping record object due to missing type or name: {record}")
                continue
            records.append(self._to_record(record))

        return records, self._next_cursor(page, page_number)

    def create_record(self, zone: Zone, draft: ProviderRecord) -> ProviderRecord:
        try:
            record = self.cf.dns.records.create(
                zone_id=zone.id,
                name=draft.name,
                type=draft.type,
                content=draft.data,
                ttl=self._ttl(draft),
                proxied=draft.proxied,
            )
        except cloudflare.CloudflareError as e:
            raise self._api_error(f"creating DNS record for {draft.name}", e) from e
        return self._to_record(record)

    def edit_record(
        self, zone: Zone, record_id: RecordID, draft: ProviderRecord
    ) -> ProviderRecord:
        try:
            record = self.cf.dns.records.update(
                dns_record_id=str(record_id),
                zone_id=zone.id,
                name=draft.name,
                type=draft.type,
                content=draft.data,
                ttl=self._ttl(draft),
                proxied=draft.proxied,
            )
        except cloudflare.CloudflareError as e:
            raise self._api_error(
                f"updating DNS record {record_id} for {draft.name}", e
            ) from e
        return self._to_record(record)

    def delete_record(self, zone: Zone, record_id: RecordID) -> None:
        try:
            self.cf.dns.records.delete(dns_record_id=str(record_id), zone_id=zone.id)
        except cloudflare.CloudflareError as e:
            raise self._api_error(f"deleting DNS record {record_id}", e) from e

    @staticmethod
    def _next_cursor(page: Any, page_number: int) -> Optional[int]:
        if page.has_next_page():
            return page_number + 1
        return None

    @staticmethod
    def _ttl(draft: ProviderRecord) -> int:
        return draft.ttl if draft.ttl is not None else AUTO_TTL

    @staticmethod
    def _to_record(record: Any) -> ProviderRecord:
        ttl = getattr(record, "ttl", None)
        return ProviderRecord(
            id=getattr(record, "id", None) or "",
            name=normalize_name(getattr(record, "name", "") or ""),
            type=getattr(record, "type", "") or "",
            data=getattr(record, "content", "") or "",
            ttl=None if ttl == AUTO_TTL else ttl,
            proxied=bool(getattr(record, "proxied", False)),
        )

    def _api_error(self, context: str, e: cloudflare.CloudflareError) -> ProviderAPIError:
        if isinstance(e, cloudflare.APIStatusError):
            code = e.status_code
        else:
            code = getattr(e, "code", None)
        error_message = getattr(e, "message", str(e))
        self.logger.debug(
            f"Cloudflare API Error {context}: {e} (Code: {code or 'N/A'}, Message: {error_message})"
        )
        return ProviderAPIError(f"Cloudflare error {context}: {error_message}", code=code)
