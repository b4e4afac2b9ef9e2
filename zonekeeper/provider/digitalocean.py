"""DigitalOcean DNS client implementation."""

import logging
import os
from typing import Any, Optional

import httpx

from zonekeeper.models.models import ProviderRecord, RecordID, Zone, normalize_name
from zonekeeper.provider.errors import CredentialError, ProviderAPIError

# Record types whose data is a hostname and must be sent fully qualified
HOSTNAME_TYPES = {"CNAME"}


def relative_name(name: str, zone: str) -> str:
    """Convert an FQDN into the zone-relative form DigitalOcean uses ("@" for the apex)."""
    name = normalize_name(name)
    zone = normalize_name(zone)
    if name == zone:
        return "@"
    suffix = "." + zone
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name


def absolute_name(name: str, zone: str) -> str:
    """Convert a zone-relative DigitalOcean record name into an FQDN."""
    zone = normalize_name(zone)
    if not name or name == "@":
        return zone
    return f"{normalize_name(name)}.{zone}"


class DigitalOceanClient:
    """DNSClient implementation for the DigitalOcean v2 API. Cursors are page numbers."""

    BASE_URL = "https://api.digitalocean.com/v2"

    def __init__(
        self,
        token: Optional[str] = None,
        page_size: int = 100,
        retries: int = 2,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize DigitalOcean client.

        Args:
            token: DigitalOcean API token, read from DO_TOKEN when omitted
            page_size: Number of items requested per page
            retries: Connection retries performed by the transport
            transport: Custom httpx transport, mostly for tests

        Raises:
            CredentialError: No token was given and DO_TOKEN is not set
        """
        token = token or os.environ.get("DO_TOKEN")
        if not token:
            raise CredentialError("no DigitalOcean token found, set DO_TOKEN")
        self.page_size = page_size
        self.logger = logging.getLogger("zonekeeper.provider.digitalocean")
        self.client = httpx.Client(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            transport=transport or httpx.HTTPTransport(retries=retries),
            timeout=30.0,
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and translate failures into ProviderAPIError."""
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = e.response.text
            try:
                message = e.response.json().get("message", message)
            except ValueError:
                pass
            self.logger.debug(f"DigitalOcean API Error {method} {url}: {message}")
            raise ProviderAPIError(
                f"DigitalOcean error {method} {url}: {message}",
                code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderAPIError(f"DigitalOcean error {method} {url}: {e}") from e
        return response

    def _json(self, method: str, url: str, key: Optional[str] = None, **kwargs: Any) -> Any:
        """Send a request and decode its JSON body, optionally picking one key out of it."""
        response = self._request(method, url, **kwargs)
        try:
            data = response.json()
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            return data[key] if key is not None else data
        except (ValueError, KeyError, TypeError) as e:
            self.logger.debug(f"Unexpected DigitalOcean response {method} {url}: {response.text[:200]}")
            raise ProviderAPIError(
                f"DigitalOcean error {method} {url}: unexpected response body",
                code=response.status_code,
            ) from e

    def _page_params(self, cursor: Optional[Any]) -> dict[str, int]:
        return {"page": cursor or 1, "per_page": self.page_size}

    @staticmethod
    def _next_cursor(data: dict[str, Any], cursor: Optional[Any]) -> Optional[int]:
        pages = (data.get("links") or {}).get("pages") or {}
        if pages.get("next"):
            return (cursor or 1) + 1
        return None

    def list_zones(self, cursor: Optional[Any]) -> tuple[list[Zone], Optional[Any]]:
        """List one page of domains."""
        data = self._json("GET", "/domains", params=self._page_params(cursor))
        zones = [Zone(name=domain["name"]) for domain in data.get("domains") or []]
        return zones, self._next_cursor(data, cursor)

    def list_records(
        self, zone: Zone, cursor: Optional[Any]
    ) -> tuple[list[ProviderRecord], Optional[Any]]:
        """List one page of records of a domain."""
        data = self._json(
            "GET", f"/domains/{zone.name}/records", params=self._page_params(cursor)
        )
        records = [
            self._to_record(record, zone) for record in data.get("domain_records") or []
        ]
        return records, self._next_cursor(data, cursor)

    def create_record(self, zone: Zone, draft: ProviderRecord) -> ProviderRecord:
        """Create a record."""
        record = self._json(
            "POST",
            f"/domains/{zone.name}/records",
            key="domain_record",
            json=self._body(draft, zone),
        )
        return self._to_record(record, zone)

    def edit_record(
        self, zone: Zone, record_id: RecordID, draft: ProviderRecord
    ) -> ProviderRecord:
        """Replace the data of an existing record."""
        record = self._json(
            "PUT",
            f"/domains/{zone.name}/records/{record_id}",
            key="domain_record",
            json=self._body(draft, zone),
        )
        return self._to_record(record, zone)

    def delete_record(self, zone: Zone, record_id: RecordID) -> None:
        """Delete a record."""
        self._request("DELETE", f"/domains/{zone.name}/records/{record_id}")

    @staticmethod
    def _body(draft: ProviderRecord, zone: Zone) -> dict[str, Any]:
        data = draft.data
        if draft.type in HOSTNAME_TYPES and not data.endswith("."):
            data += "."
        body: dict[str, Any] = {
            "type": draft.type,
            "name": relative_name(draft.name, zone.name),
            "data": data,
        }
        if draft.ttl is not None:
            body["ttl"] = draft.ttl
        return body

    @staticmethod
    def _to_record(record: dict[str, Any], zone: Zone) -> ProviderRecord:
        data = record.get("data") or ""
        if record.get("type") in HOSTNAME_TYPES:
            data = data.rstrip(".")
        return ProviderRecord(
            id=record.get("id", 0),
            name=absolute_name(record.get("name", ""), zone.name),
            type=record.get("type", ""),
            data=data,
            ttl=record.get("ttl"),
        )
