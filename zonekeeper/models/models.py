"""
Data models for Zonekeeper.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

# Identifier used when a record has not been created yet or could not be found.
ABSENT_RECORD_ID = 0

RecordID = Union[int, str]

# Record types the engine owns. Anything else in a zone (NS, SOA, MX, ...) is left alone.
MANAGED_RECORD_TYPES = ("A", "AAAA", "CNAME", "TXT")


def normalize_name(name: str) -> str:
    """
    Normalize a DNS name for comparison.

    Args:
        name: DNS name, optionally with a trailing dot

    Returns:
        str: Lower-cased name without the trailing dot
    """
    return name.strip().rstrip(".").lower()


def is_subdomain(name: str, parent: str) -> bool:
    """
    Check whether name equals parent or lies below it on a label boundary.
    """
    name = normalize_name(name)
    parent = normalize_name(parent)
    return name == parent or name.endswith("." + parent)


@dataclass
class Endpoint:
    """
    Represents a DNS endpoint (record set) to be managed by Zonekeeper.
    """

    dnsname: str
    targets: List[str]
    record_type: str
    record_ttl: Optional[int] = None
    proxied: bool = False

    @property
    def id(self) -> str:
        """
        Generate a unique identifier for this endpoint.

        Returns:
            str: Unique identifier
        """
        return f"{normalize_name(self.dnsname)}:{self.record_type.upper()}"


@dataclass
class Changes:
    """
    Represents changes to be applied to DNS records.
    """

    create: List[Endpoint] = field(default_factory=list)
    update_old: List[Endpoint] = field(default_factory=list)
    update_new: List[Endpoint] = field(default_factory=list)
    delete: List[Endpoint] = field(default_factory=list)

    def has_changes(self) -> bool:
        """
        Check if there are any changes to be applied.

        Returns:
            bool: True if there are changes, False otherwise
        """
        return bool(self.create or self.update_old or self.update_new or self.delete)


@dataclass
class Zone:
    """
    A DNS zone hosted by the provider account.
    """

    name: str
    id: Optional[str] = None


@dataclass
class ProviderRecord:
    """
    A single record as the provider stores it. ``name`` is always a normalized FQDN.
    """

    name: str
    type: str
    data: str
    ttl: Optional[int] = None
    proxied: bool = False
    id: RecordID = ABSENT_RECORD_ID


class ChangeAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class RecordChange:
    """
    One record operation. For updates ``previous`` holds the old identity used to
    find the record, while ``record`` holds the new body.
    """

    action: ChangeAction
    record: ProviderRecord
    previous: Optional[ProviderRecord] = None

    @property
    def identity(self) -> ProviderRecord:
        return self.previous if self.previous is not None else self.record

    def describe(self) -> str:
        return f"{self.action.value} {self.record.type} {self.record.name} -> {self.record.data}"
