"""
Errors raised by the provider synchronization engine.
"""

from typing import Any, List, Optional


class ProviderError(Exception):
    """Base class for all provider errors."""


class ProviderAPIError(ProviderError):
    """A single provider API call failed."""

    def __init__(self, message: str, code: Optional[Any] = None):
        super().__init__(message)
        self.code = code


class CredentialError(ProviderError):
    """Credentials are missing or invalid; the client cannot be constructed."""


class PaginationError(ProviderError):
    """
    Walking a paginated collection failed. ``partial`` holds the items gathered
    before the failing page.
    """

    def __init__(self, message: str, partial: Optional[List[Any]] = None):
        super().__init__(message)
        self.partial = partial if partial is not None else []


class ZoneListError(PaginationError):
    """The zones of the account could not be listed."""


class RecordListError(PaginationError):
    """The records of a zone could not be listed."""


class RecordMutationError(ProviderError):
    """Creating, editing or deleting a single record failed."""

    def __init__(self, action: str, zone: str, name: str, record_type: str, reason: str):
        super().__init__(
            f"failed to {action} {record_type} record {name} in zone {zone}: {reason}"
        )
        self.action = action
        self.zone = zone
        self.name = name
        self.record_type = record_type


class CycleCancelledError(ProviderError):
    """The apply cycle was cancelled before all operations were issued."""
