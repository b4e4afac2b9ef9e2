"""
Capability every DNS backend provides to the synchronization engine.
"""

from typing import Any, List, Optional, Protocol, Tuple

from zonekeeper.models.models import ProviderRecord, RecordID, Zone


class DNSClient(Protocol):
    """
    Blocking client for one provider account.

    Listing calls take a cursor (None for the first page) and return the page
    items together with the next cursor, or None on the last page. Every call
    raises ``ProviderAPIError`` when the provider reports a failure.
    """

    def list_zones(self, cursor: Optional[Any]) -> Tuple[List[Zone], Optional[Any]]:
        ...

    def list_records(
        self, zone: Zone, cursor: Optional[Any]
    ) -> Tuple[List[ProviderRecord], Optional[Any]]:
        ...

    def create_record(self, zone: Zone, draft: ProviderRecord) -> ProviderRecord:
        ...

    def edit_record(
        self, zone: Zone, record_id: RecordID, draft: ProviderRecord
    ) -> ProviderRecord:
        ...

    def delete_record(self, zone: Zone, record_id: RecordID) -> None:
        ...
