"""
Provider module for Zonekeeper.

This module is responsible for keeping the records of a DNS provider account in line
with a set of changes: it resolves the zone owning each record, looks up record
identifiers and issues the create, edit and delete calls.
"""

import asyncio
import functools
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from zonekeeper.models.models import (
    ABSENT_RECORD_ID,
    MANAGED_RECORD_TYPES,
    ChangeAction,
    Changes,
    Endpoint,
    ProviderRecord,
    RecordChange,
    RecordID,
    Zone,
    is_subdomain,
    normalize_name,
)
from zonekeeper.provider.changes import plan_record_changes
from zonekeeper.provider.client import DNSClient
from zonekeeper.provider.domain_filter import DomainFilter
from zonekeeper.provider.errors import (
    CycleCancelledError,
    ProviderAPIError,
    RecordListError,
    RecordMutationError,
    ZoneListError,
)
from zonekeeper.provider.pagination import collect_pages

# Anything with is_set(): checked before every record operation
CancelSignal = Union[asyncio.Event, threading.Event]


def suitable_zone(record_name: str, zones: Iterable[Zone]) -> Optional[Zone]:
    """
    Find the most specific zone owning a record name.

    Args:
        record_name: Fully qualified record name
        zones: Candidate zones

    Returns:
        Optional[Zone]: Zone with the longest name that is a label-boundary suffix
        of record_name, or None if no zone owns it
    """
    best: Optional[Zone] = None
    for zone in zones:
        if not is_subdomain(record_name, zone.name):
            continue
        if best is None or len(normalize_name(zone.name)) > len(normalize_name(best.name)):
            best = zone
    return best


def record_id(
    records: Iterable[ProviderRecord],
    identity: ProviderRecord,
    claimed: Optional[Set[RecordID]] = None,
) -> RecordID:
    """
    Find the identifier of the first record with the same name and type.

    A record that also holds the same data is preferred over an earlier one that
    does not.

    Args:
        records: Records of the zone
        identity: Record to look for, matched on name and type
        claimed: Identifiers already used in this cycle, skipped during lookup

    Returns:
        RecordID: Identifier of the match, or ABSENT_RECORD_ID if there is none
    """
    name = normalize_name(identity.name)
    first_match: RecordID = ABSENT_RECORD_ID
    for record in records:
        if claimed and record.id in claimed:
            continue
        if normalize_name(record.name) != name or record.type.upper() != identity.type.upper():
            continue
        # Within a round-robin set the record holding the same value is the one meant
        if record.data == identity.data:
            return record.id
        if first_match == ABSENT_RECORD_ID:
            first_match = record.id
    return first_match


class DNSProvider:
    """
    Synchronization engine on top of a DNSClient.
    """

    def __init__(
        self,
        client: DNSClient,
        domain_filter: Optional[DomainFilter] = None,
        dry_run: bool = False,
        parallel_zones: bool = False,
        zone_miss_log_level: Optional[int] = logging.DEBUG,
        record_types: Iterable[str] = MANAGED_RECORD_TYPES,
    ):
        """
        Initialize a DNSProvider.

        Args:
            client: Backend client for the provider account
            domain_filter: Restricts which zones may be managed
            dry_run: Log the changes instead of applying them
            parallel_zones: Apply the changes of different zones concurrently
            zone_miss_log_level: Level used to log records no managed zone owns,
                None to skip them silently
            record_types: Record types reported by records(); others are never managed
        """
        self.client = client
        self.domain_filter = domain_filter or DomainFilter()
        self.dry_run = dry_run
        self.parallel_zones = parallel_zones
        self.zone_miss_log_level = zone_miss_log_level
        self.record_types = {record_type.upper() for record_type in record_types}
        self.logger = logging.getLogger("zonekeeper.provider")

    async def zones(self) -> List[Zone]:
        """
        Returns the zones of the account that match the domain filter.

        Returns:
            List[Zone]: Managed zones

        Raises:
            ZoneListError: The zones could not be listed
        """
        all_zones = await self._call(
            collect_pages, self.client.list_zones, ZoneListError, "zones"
        )
        self.logger.debug(f"Received {len(all_zones)} zones from provider.")

        managed = []
        for zone in all_zones:
            if self.domain_filter.match(zone.name):
                managed.append(zone)
            else:
                self.logger.debug(f"Zone '{zone.name}' does not match {self.domain_filter}, skipping.")

        self.logger.debug(f"Found {len(managed)} managed zones.")
        return managed

    async def records(self) -> List[Endpoint]:
        """
        Returns all records of the managed zones, grouped into endpoints.

        Only records of the managed types are reported, so apex NS and SOA records
        never end up in a plan.

        Returns:
            List[Endpoint]: Current endpoints

        Raises:
            ZoneListError: The zones could not be listed
            RecordListError: The records of a zone could not be listed
        """
        endpoints: Dict[Tuple[str, str], Endpoint] = {}
        for zone in await self.zones():
            for record in await self._zone_records(zone):
                if record.type.upper() not in self.record_types:
                    continue
                key = (normalize_name(record.name), record.type.upper())
                endpoint = endpoints.get(key)
                if endpoint is None:
                    endpoints[key] = Endpoint(
                        dnsname=key[0],
                        targets=[record.data],
                        record_type=key[1],
                        record_ttl=record.ttl,
                        proxied=record.proxied,
                    )
                else:
                    endpoint.targets.append(record.data)
        return list(endpoints.values())

    async def apply_changes(
        self,
        changes: Changes,
        zones: Optional[List[Zone]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> None:
        """
        Applies the specified changes to DNS records.

        Deletes run first, then updates, then creates. Records that no managed zone
        owns are skipped. A failed mutation does not stop the remaining ones; the
        last failure is raised once everything has been attempted.

        Args:
            changes: Changes to apply
            zones: Managed zones; listed from the provider when omitted
            cancel: Event (asyncio or threading) that stops the cycle before the
                next operation once set

        Raises:
            ZoneListError: The zones could not be listed
            RecordListError: The records of a zone could not be listed
            RecordMutationError: At least one record operation failed
            CycleCancelledError: The cancel event was set
        """
        record_changes = plan_record_changes(changes)
        if not record_changes:
            self.logger.debug("No changes to apply")
            return

        if zones is None:
            zones = await self.zones()

        by_zone = self._group_by_zone(record_changes, zones)

        if self.dry_run:
            for zone, zone_changes in by_zone.values():
                for change in zone_changes:
                    self.logger.info(f"Dry run, would {change.describe()} in zone {zone.name}")
            return

        if self.parallel_zones and len(by_zone) > 1:
            tasks = [
                asyncio.create_task(self._apply_zone(zone, zone_changes, cancel))
                for zone, zone_changes in by_zone.values()
            ]
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            results = []
            for zone, zone_changes in by_zone.values():
                results.append(await self._apply_zone(zone, zone_changes, cancel))

        errors = [error for zone_errors in results for error in zone_errors]
        if errors:
            self.logger.error(
                f"{len(errors)} of {len(record_changes)} record operations failed"
            )
            raise errors[-1]

    def _group_by_zone(
        self, record_changes: List[RecordChange], zones: List[Zone]
    ) -> Dict[str, Tuple[Zone, List[RecordChange]]]:
        """
        Group operations by owning zone, keeping their order within each zone.
        """
        by_zone: Dict[str, Tuple[Zone, List[RecordChange]]] = {}
        for change in record_changes:
            zone = suitable_zone(change.record.name, zones)
            if zone is None:
                if self.zone_miss_log_level is not None:
                    self.logger.log(
                        self.zone_miss_log_level,
                        f"No managed zone for {change.record.name}, skipping {change.action.value}.",
                    )
                continue
            key = normalize_name(zone.name)
            by_zone.setdefault(key, (zone, []))[1].append(change)
        return by_zone

    async def _apply_zone(
        self,
        zone: Zone,
        zone_changes: List[RecordChange],
        cancel: Optional[CancelSignal],
    ) -> List[RecordMutationError]:
        """
        Apply the operations of one zone in order.

        Returns:
            List[RecordMutationError]: Failed operations
        """
        records: Optional[List[ProviderRecord]] = None
        claimed: Set[RecordID] = set()
        errors: List[RecordMutationError] = []

        for change in zone_changes:
            if cancel is not None and cancel.is_set():
                raise CycleCancelledError(
                    f"cycle cancelled before {change.describe()} in zone {zone.name}"
                )

            target_id: RecordID = ABSENT_RECORD_ID
            if change.action is not ChangeAction.CREATE:
                if records is None:
                    records = await self._zone_records(zone)
                target_id = record_id(records, change.identity, claimed)
                if target_id == ABSENT_RECORD_ID:
                    self.logger.debug(
                        f"Did not find existing record ID for {change.identity.name} "
                        f"({change.identity.type}) in zone {zone.name}"
                    )
                else:
                    claimed.add(target_id)

            try:
                await self._submit(zone, change, target_id)
            except ProviderAPIError as e:
                error = RecordMutationError(
                    change.action.value, zone.name, change.record.name, change.record.type, str(e)
                )
                error.__cause__ = e
                self.logger.error(f"{error} (Code: {e.code or 'N/A'})")
                errors.append(error)

        return errors

    async def _submit(self, zone: Zone, change: RecordChange, target_id: RecordID) -> None:
        record = change.record
        if change.action is ChangeAction.CREATE:
            self.logger.info(
                f"Creating DNS record: {record.type} {record.name} -> {record.data} "
                f"(TTL: {record.ttl or 'Auto'}) in zone {zone.name}"
            )
            await self._call(self.client.create_record, zone, record)
        elif change.action is ChangeAction.UPDATE:
            self.logger.info(
                f"Updating DNS record: {target_id} ({change.identity.data} -> {record.data}) "
                f"Type: {record.type}, Name: {record.name}, TTL: {record.ttl or 'Auto'}"
            )
            await self._call(self.client.edit_record, zone, target_id, record)
        else:
            self.logger.info(
                f"Deleting DNS record: {record.type} {record.name} (ID: {target_id})"
            )
            await self._call(self.client.delete_record, zone, target_id)

    async def _zone_records(self, zone: Zone) -> List[ProviderRecord]:
        fetch = functools.partial(self.client.list_records, zone)
        return await self._call(
            collect_pages, fetch, RecordListError, f"records of zone {zone.name}"
        )

    @staticmethod
    async def _call(func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking client call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))
