"""Shared test fixtures for Zonekeeper tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from zonekeeper.models.models import ProviderRecord, RecordID, Zone
from zonekeeper.provider.errors import ProviderAPIError
from zonekeeper.provider.provider import DNSProvider


class FakeDNSClient:
    """In-memory DNSClient recording every call.

    Zones and records are served in pages; the cursor is the index of the next page.
    """

    def __init__(
        self,
        zone_pages: Optional[List[List[Zone]]] = None,
        record_pages: Optional[Dict[str, List[List[ProviderRecord]]]] = None,
    ):
        self.zone_pages = zone_pages if zone_pages is not None else [[]]
        self.record_pages = record_pages or {}
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_list_zones = False
        self.fail_list_records = False
        self.fail_create = False
        self.fail_edit = False
        self.fail_delete = False
        self.on_call = None
        self._next_id = 100

    def _record_call(self, *call: Any) -> None:
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)

    @staticmethod
    def _page(pages: List[List[Any]], cursor: Optional[int]):
        index = cursor or 0
        next_cursor = index + 1 if index + 1 < len(pages) else None
        return list(pages[index]), next_cursor

    def list_zones(self, cursor):
        self._record_call("list_zones", cursor)
        if self.fail_list_zones:
            raise ProviderAPIError("Fail to get domains")
        return self._page(self.zone_pages, cursor)

    def list_records(self, zone, cursor):
        self._record_call("list_records", zone.name, cursor)
        if self.fail_list_records:
            raise ProviderAPIError("Failed to get records")
        return self._page(self.record_pages.get(zone.name, [[]]), cursor)

    def create_record(self, zone, draft):
        self._record_call("create", zone.name, draft.type, draft.name, draft.data)
        if self.fail_create:
            raise ProviderAPIError("Failed to create record", code=422)
        self._next_id += 1
        return ProviderRecord(
            id=self._next_id, name=draft.name, type=draft.type, data=draft.data, ttl=draft.ttl
        )

    def edit_record(self, zone, record_id: RecordID, draft):
        self._record_call("edit", zone.name, record_id, draft.type, draft.name, draft.data)
        if self.fail_edit:
            raise ProviderAPIError("Failed to update record", code=404)
        return ProviderRecord(
            id=record_id, name=draft.name, type=draft.type, data=draft.data, ttl=draft.ttl
        )

    def delete_record(self, zone, record_id: RecordID):
        self._record_call("delete", zone.name, record_id)
        if self.fail_delete:
            raise ProviderAPIError("Failed to delete record", code=404)

    def mutations(self) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in ("create", "edit", "delete")]


@pytest.fixture
def zones() -> List[Zone]:
    """Zones spread over two pages."""
    return [Zone(name="foo.com"), Zone(name="bar.com"), Zone(name="bar.de")]


@pytest.fixture
def client() -> FakeDNSClient:
    """Fake client with paged zones and records."""
    return FakeDNSClient(
        zone_pages=[[Zone(name="foo.com")], [Zone(name="bar.com"), Zone(name="bar.de")]],
        record_pages={
            "foo.com": [
                [
                    ProviderRecord(id=1, name="foobar.ext-dns-test.foo.com", type="A", data="1.1.1.1"),
                    ProviderRecord(id=2, name="foo.com", type="TXT", data="hello"),
                ],
                [ProviderRecord(id=3, name="baz.ext-dns-test.foo.com", type="CNAME", data="foo.com")],
            ],
            "bar.com": [
                [
                    ProviderRecord(id=10, name="foobar.ext-dns-test.bar.com", type="A", data="2.2.2.2"),
                    ProviderRecord(id=11, name="rr.bar.com", type="A", data="10.0.0.1"),
                    ProviderRecord(id=12, name="rr.bar.com", type="A", data="10.0.0.2"),
                ]
            ],
        },
    )


@pytest.fixture
def provider(client: FakeDNSClient) -> DNSProvider:
    return DNSProvider(client)
