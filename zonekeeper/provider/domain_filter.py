"""
Domain filter restricting which zones Zonekeeper may manage.
"""

from typing import Iterable, List, Optional

from zonekeeper.models.models import is_subdomain, normalize_name


class DomainFilter:
    """
    Suffix-based predicate over zone names.

    An empty include list matches every zone. Entries match on label boundaries,
    so ``oo.com`` does not match ``foo.com``. An entry written as ``*.example.com``
    matches subdomains of ``example.com`` but not the name itself. Exclusions win.
    """

    def __init__(
        self,
        filters: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ):
        self.filters: List[str] = self._clean(filters)
        self.exclude: List[str] = self._clean(exclude)

    def match(self, zone_name: str) -> bool:
        """
        Check whether a zone is in scope.

        Args:
            zone_name: Zone name

        Returns:
            bool: True if the zone may be managed
        """
        if self._matches_any(zone_name, self.exclude):
            return False
        if not self.filters:
            return True
        return self._matches_any(zone_name, self.filters)

    def __bool__(self) -> bool:
        return bool(self.filters)

    def __repr__(self) -> str:
        return f"DomainFilter(filters={self.filters!r}, exclude={self.exclude!r})"

    @staticmethod
    def _clean(entries: Optional[Iterable[str]]) -> List[str]:
        cleaned = []
        for entry in entries or []:
            entry = entry.strip()
            if entry.startswith("*."):
                cleaned.append("*." + normalize_name(entry[2:]).lstrip("."))
            elif normalize_name(entry):
                cleaned.append(normalize_name(entry).lstrip("."))
        return cleaned

    @staticmethod
    def _matches_any(zone_name: str, entries: List[str]) -> bool:
        name = normalize_name(zone_name)
        for entry in entries:
            if entry.startswith("*."):
                if name.endswith("." + entry[2:]):
                    return True
            elif is_subdomain(name, entry):
                return True
        return False
