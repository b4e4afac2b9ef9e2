"""Tests for the provider synchronization engine."""

import asyncio
import logging
import threading
import time

import pytest

from conftest import FakeDNSClient
from zonekeeper.controller.plan import Plan
from zonekeeper.models.models import ABSENT_RECORD_ID, Changes, Endpoint, ProviderRecord, Zone
from zonekeeper.provider.domain_filter import DomainFilter
from zonekeeper.provider.errors import (
    CycleCancelledError,
    RecordListError,
    RecordMutationError,
    ZoneListError,
)
from zonekeeper.provider.provider import DNSProvider, record_id, suitable_zone


def a_record(name, *targets, ttl=None):
    return Endpoint(dnsname=name, targets=list(targets), record_type="A", record_ttl=ttl)


class TestSuitableZone:
    """Tests for suitable_zone()."""

    zones = [Zone(name="foo.com"), Zone(name="bar.foo.com"), Zone(name="baz.com")]

    def test_longest_suffix_wins(self):
        assert suitable_zone("record.bar.foo.com", self.zones).name == "bar.foo.com"
        assert suitable_zone("record.foo.com", self.zones).name == "foo.com"

    def test_order_of_zones_does_not_matter(self):
        assert suitable_zone("record.bar.foo.com", list(reversed(self.zones))).name == "bar.foo.com"

    def test_no_match(self):
        assert suitable_zone("foo.de", self.zones) is None
        assert suitable_zone("x.foo.de", self.zones) is None

    def test_label_boundary(self):
        assert suitable_zone("xfoo.com", self.zones) is None

    def test_apex_and_trailing_dot(self):
        assert suitable_zone("Bar.Foo.com.", self.zones).name == "bar.foo.com"


class TestRecordID:
    """Tests for record_id()."""

    records = [
        ProviderRecord(id=1, name="foo.com", type="CNAME", data="a"),
        ProviderRecord(id=2, name="baz.de", type="A", data="b"),
        ProviderRecord(id=3, name="foo.com", type="CNAME", data="c"),
    ]

    def test_match(self):
        assert record_id(self.records, ProviderRecord(name="foo.com", type="CNAME", data="")) == 1

    def test_no_match_returns_sentinel(self):
        assert record_id(self.records, ProviderRecord(name="foo.com", type="A", data="")) == 0
        assert ABSENT_RECORD_ID == 0

    def test_skips_claimed(self):
        identity = ProviderRecord(name="foo.com.", type="CNAME", data="")
        assert record_id(self.records, identity, claimed={1}) == 3
        assert record_id(self.records, identity, claimed={1, 3}) == ABSENT_RECORD_ID

    def test_prefers_same_data(self):
        identity = ProviderRecord(name="foo.com", type="CNAME", data="c")
        assert record_id(self.records, identity) == 3

    def test_type_is_case_insensitive(self):
        assert record_id(self.records, ProviderRecord(name="foo.com", type="cname", data="")) == 1


class TestZones:
    """Tests for DNSProvider.zones()."""

    async def test_lists_all_pages(self, provider, client):
        zones = await provider.zones()

        assert [zone.name for zone in zones] == ["foo.com", "bar.com", "bar.de"]
        assert [call for call in client.calls if call[0] == "list_zones"] == [
            ("list_zones", None),
            ("list_zones", 1),
        ]

    async def test_applies_domain_filter(self, client):
        provider = DNSProvider(client, domain_filter=DomainFilter(["com"]))
        zones = await provider.zones()
        assert [zone.name for zone in zones] == ["foo.com", "bar.com"]

    async def test_list_failure(self, provider, client):
        client.fail_list_zones = True
        with pytest.raises(ZoneListError):
            await provider.zones()


class TestRecords:
    """Tests for DNSProvider.records()."""

    async def test_groups_records_into_endpoints(self, provider):
        endpoints = await provider.records()

        by_id = {endpoint.id: endpoint for endpoint in endpoints}
        assert len(endpoints) == 5
        assert by_id["baz.ext-dns-test.foo.com:CNAME"].targets == ["foo.com"]
        assert by_id["rr.bar.com:A"].targets == ["10.0.0.1", "10.0.0.2"]

    async def test_list_failure(self, provider, client):
        client.fail_list_records = True
        with pytest.raises(RecordListError):
            await provider.records()

    async def test_unmanaged_types_are_not_reported(self):
        client = FakeDNSClient(
            zone_pages=[[Zone(name="example.com")]],
            record_pages={
                "example.com": [
                    [
                        ProviderRecord(id=1, name="example.com", type="NS", data="ns1.example.net"),
                        ProviderRecord(id=2, name="example.com", type="SOA", data="1800"),
                        ProviderRecord(id=3, name="app.example.com", type="a", data="1.1.1.1"),
                    ]
                ]
            },
        )

        endpoints = await DNSProvider(client).records()

        assert [endpoint.id for endpoint in endpoints] == ["app.example.com:A"]

    async def test_record_types_can_be_widened(self):
        client = FakeDNSClient(
            zone_pages=[[Zone(name="example.com")]],
            record_pages={
                "example.com": [[ProviderRecord(id=1, name="example.com", type="MX", data="10 mx.example.com")]]
            },
        )

        endpoints = await DNSProvider(client, record_types=["A", "mx"]).records()

        assert [endpoint.id for endpoint in endpoints] == ["example.com:MX"]


class TestApplyChanges:
    """Tests for DNSProvider.apply_changes()."""

    async def test_mixed_changes(self, provider, client):
        changes = Changes(
            create=[
                a_record("new.ext-dns-test.bar.com", "target"),
                a_record("new.ext-dns-test.unexpected.com", "target"),
            ],
            delete=[a_record("foobar.ext-dns-test.bar.com", "target")],
            update_old=[a_record("foobar.ext-dns-test.bar.de", "target-old")],
            update_new=[a_record("foobar.ext-dns-test.foo.com", "target-new")],
        )

        await provider.apply_changes(changes)

        assert client.mutations() == [
            ("delete", "bar.com", 10),
            ("create", "bar.com", "A", "new.ext-dns-test.bar.com", "target"),
            ("edit", "foo.com", 0, "A", "foobar.ext-dns-test.foo.com", "target-new"),
        ]

    async def test_unmanaged_record_is_skipped(self, provider, client):
        changes = Changes(
            create=[
                a_record("app.foo.com", "1.2.3.4"),
                a_record("app.elsewhere.org", "1.2.3.4"),
            ]
        )

        await provider.apply_changes(changes)

        assert client.mutations() == [("create", "foo.com", "A", "app.foo.com", "1.2.3.4")]

    async def test_delete_before_create(self):
        client = FakeDNSClient(
            zone_pages=[[Zone(name="example.com")]],
            record_pages={
                "example.com": [[ProviderRecord(id=5, name="a.example.com", type="A", data="1.1.1.1")]]
            },
        )
        changes = Changes(
            create=[a_record("a.example.com", "2.2.2.2")],
            delete=[a_record("a.example.com", "1.1.1.1")],
        )

        await DNSProvider(client).apply_changes(changes)

        assert client.mutations() == [
            ("delete", "example.com", 5),
            ("create", "example.com", "A", "a.example.com", "2.2.2.2"),
        ]

    async def test_empty_changes_make_no_calls(self, provider, client):
        await provider.apply_changes(Changes())
        assert client.calls == []

    async def test_matching_state_is_idempotent(self, provider, client):
        current = await provider.records()
        desired = [
            Endpoint(e.dnsname, list(e.targets), e.record_type, e.record_ttl) for e in current
        ]
        client.calls.clear()

        changes = Plan(current, desired).calculate_changes()
        await provider.apply_changes(changes)

        assert not changes.has_changes()
        assert client.calls == []

    async def test_given_zones_are_not_listed(self, provider, client):
        await provider.apply_changes(
            Changes(create=[a_record("x.bar.de", "1.1.1.1")]), zones=[Zone(name="bar.de")]
        )

        assert not any(call[0] == "list_zones" for call in client.calls)
        assert client.mutations() == [("create", "bar.de", "A", "x.bar.de", "1.1.1.1")]

    async def test_records_listed_once_per_zone(self, provider, client):
        changes = Changes(
            delete=[
                a_record("foobar.ext-dns-test.bar.com", "2.2.2.2"),
                a_record("rr.bar.com", "10.0.0.1", "10.0.0.2"),
            ]
        )

        await provider.apply_changes(changes)

        assert [call for call in client.calls if call[0] == "list_records"] == [
            ("list_records", "bar.com", None)
        ]
        assert client.mutations() == [
            ("delete", "bar.com", 10),
            ("delete", "bar.com", 11),
            ("delete", "bar.com", 12),
        ]

    async def test_multi_target_update_edits_each_record_once(self, provider, client):
        changes = Changes(
            update_old=[a_record("rr.bar.com", "10.0.0.1", "10.0.0.2")],
            update_new=[a_record("rr.bar.com", "10.0.0.3", "10.0.0.4", "10.0.0.5")],
        )

        await provider.apply_changes(changes)

        assert client.mutations() == [
            ("edit", "bar.com", 11, "A", "rr.bar.com", "10.0.0.3"),
            ("edit", "bar.com", 12, "A", "rr.bar.com", "10.0.0.4"),
            ("create", "bar.com", "A", "rr.bar.com", "10.0.0.5"),
        ]

    async def test_create_only_does_not_list_records(self, provider, client):
        client.fail_list_records = True

        await provider.apply_changes(Changes(create=[a_record("n.foo.com", "1.1.1.1")]))

        assert client.mutations() == [("create", "foo.com", "A", "n.foo.com", "1.1.1.1")]

    async def test_mutation_failure_does_not_stop_cycle(self, provider, client):
        client.fail_delete = True
        changes = Changes(
            create=[a_record("new.foo.com", "1.1.1.1")],
            delete=[
                a_record("foobar.ext-dns-test.bar.com", "2.2.2.2"),
                Endpoint(dnsname="baz.ext-dns-test.foo.com", targets=["foo.com"], record_type="CNAME"),
            ],
        )

        with pytest.raises(RecordMutationError) as exc_info:
            await provider.apply_changes(changes)

        assert client.mutations() == [
            ("delete", "bar.com", 10),
            ("delete", "foo.com", 3),
            ("create", "foo.com", "A", "new.foo.com", "1.1.1.1"),
        ]
        error = exc_info.value
        assert error.action == "delete"
        assert error.zone == "foo.com"
        assert error.name == "baz.ext-dns-test.foo.com"
        assert error.record_type == "CNAME"

    async def test_missing_record_surfaces_provider_error(self, provider, client):
        client.fail_edit = True
        changes = Changes(
            update_old=[a_record("missing.foo.com", "1.1.1.1")],
            update_new=[a_record("missing.foo.com", "2.2.2.2")],
        )

        with pytest.raises(RecordMutationError, match="missing.foo.com"):
            await provider.apply_changes(changes)

        assert client.mutations() == [("edit", "foo.com", 0, "A", "missing.foo.com", "2.2.2.2")]

    async def test_zone_list_failure_aborts(self, provider, client):
        client.fail_list_zones = True

        with pytest.raises(ZoneListError):
            await provider.apply_changes(Changes(create=[a_record("n.foo.com", "1.1.1.1")]))

        assert client.mutations() == []

    async def test_record_list_failure_aborts(self, provider, client):
        client.fail_list_records = True
        changes = Changes(
            create=[a_record("n.foo.com", "1.1.1.1")],
            delete=[a_record("foobar.ext-dns-test.foo.com", "1.1.1.1")],
        )

        with pytest.raises(RecordListError):
            await provider.apply_changes(changes)

        assert client.mutations() == []

    async def test_cancelled_before_start(self, provider, client):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(CycleCancelledError):
            await provider.apply_changes(
                Changes(create=[a_record("n.foo.com", "1.1.1.1")]), cancel=cancel
            )

        assert client.mutations() == []

    async def test_cancelled_mid_cycle(self, provider, client):
        cancel = threading.Event()
        client.on_call = lambda call: cancel.set() if call[0] == "create" else None
        changes = Changes(
            create=[a_record("one.foo.com", "1.1.1.1"), a_record("two.foo.com", "2.2.2.2")]
        )

        with pytest.raises(CycleCancelledError):
            await provider.apply_changes(changes, cancel=cancel)

        assert client.mutations() == [("create", "foo.com", "A", "one.foo.com", "1.1.1.1")]

    async def test_dry_run_makes_no_mutations(self, client, caplog):
        provider = DNSProvider(client, dry_run=True)

        with caplog.at_level(logging.INFO, logger="zonekeeper.provider"):
            await provider.apply_changes(Changes(create=[a_record("n.foo.com", "1.1.1.1")]))

        assert client.mutations() == []
        assert "Dry run, would create A n.foo.com -> 1.1.1.1 in zone foo.com" in caplog.text

    async def test_parallel_zones_keep_order_within_zone(self, client):
        provider = DNSProvider(client, parallel_zones=True)
        changes = Changes(
            create=[a_record("foobar.ext-dns-test.bar.com", "3.3.3.3"), a_record("n.foo.com", "1.1.1.1")],
            delete=[a_record("foobar.ext-dns-test.bar.com", "2.2.2.2")],
        )

        await provider.apply_changes(changes)

        bar_calls = [call for call in client.mutations() if call[1] == "bar.com"]
        assert bar_calls == [
            ("delete", "bar.com", 10),
            ("create", "bar.com", "A", "foobar.ext-dns-test.bar.com", "3.3.3.3"),
        ]
        assert ("create", "foo.com", "A", "n.foo.com", "1.1.1.1") in client.mutations()

    async def test_parallel_zones_list_failure(self, client):
        client.fail_list_records = True
        provider = DNSProvider(client, parallel_zones=True)
        changes = Changes(
            delete=[a_record("foobar.ext-dns-test.bar.com", "2.2.2.2"), a_record("x.foo.com", "1.1.1.1")]
        )

        with pytest.raises(RecordListError):
            await provider.apply_changes(changes)

    async def test_zone_miss_is_logged(self, provider, caplog):
        with caplog.at_level(logging.DEBUG, logger="zonekeeper.provider"):
            await provider.apply_changes(Changes(create=[a_record("x.unexpected.com", "1.1.1.1")]))

        assert "No managed zone for x.unexpected.com" in caplog.text

    async def test_zone_miss_can_be_silent(self, client, caplog):
        provider = DNSProvider(client, zone_miss_log_level=None)

        with caplog.at_level(logging.DEBUG, logger="zonekeeper.provider"):
            await provider.apply_changes(Changes(create=[a_record("x.unexpected.com", "1.1.1.1")]))

        assert "No managed zone" not in caplog.text
        assert client.mutations() == []

    async def test_parallel_failure_settles_sibling_zones(self, client):
        client.fail_list_records = True
        client.on_call = lambda call: time.sleep(0.2) if call[:2] == ("list_records", "foo.com") else None
        provider = DNSProvider(client, parallel_zones=True)
        changes = Changes(
            delete=[a_record("foobar.ext-dns-test.bar.com", "2.2.2.2"), a_record("x.foo.com", "1.1.1.1")]
        )

        with pytest.raises(RecordListError):
            await provider.apply_changes(changes)

        pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        assert all(task.done() for task in pending)

    async def test_lower_case_record_type_matches_existing_record(self, provider, client):
        changes = Changes(
            delete=[Endpoint(dnsname="foobar.ext-dns-test.bar.com", targets=["2.2.2.2"], record_type="a")]
        )

        await provider.apply_changes(changes)

        assert client.mutations() == [("delete", "bar.com", 10)]
