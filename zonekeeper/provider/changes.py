"""
Change translation for Zonekeeper.

This module turns a Changes set into the ordered list of single-record operations
the provider executes. Providers store one value per record, so multi-target
endpoints expand into one operation per target.
"""

from typing import List

from zonekeeper.models.models import (
    ChangeAction,
    Changes,
    Endpoint,
    ProviderRecord,
    RecordChange,
    normalize_name,
)


def _draft(endpoint: Endpoint, target: str) -> ProviderRecord:
    return ProviderRecord(
        name=normalize_name(endpoint.dnsname),
        type=endpoint.record_type.upper(),
        data=target,
        ttl=endpoint.record_ttl,
        proxied=endpoint.proxied,
    )


def new_record_changes(
    action: ChangeAction, endpoints: List[Endpoint]
) -> List[RecordChange]:
    """
    Expand endpoints into one operation per target, all tagged with action.

    Args:
        action: Action for every produced operation
        endpoints: Endpoints to translate

    Returns:
        List[RecordChange]: Operations in endpoint and target order
    """
    return [
        RecordChange(action=action, record=_draft(endpoint, target))
        for endpoint in endpoints
        for target in endpoint.targets
    ]


def new_update_changes(
    update_old: List[Endpoint], update_new: List[Endpoint]
) -> List[RecordChange]:
    """
    Translate aligned update pairs.

    Targets present on both sides with the same TTL and proxied flag are left
    alone. The remaining old and new targets are paired by position into edits
    that carry the old identity for lookup and the new data as body. Surplus new targets are created
    and surplus old targets deleted, so the record set ends up holding exactly the
    new targets.

    Args:
        update_old: Endpoints as they are now
        update_new: Endpoints as they should be, index-aligned with update_old

    Returns:
        List[RecordChange]: Operations in pair order

    Raises:
        ValueError: The two lists differ in length
    """
    if len(update_old) != len(update_new):
        raise ValueError(
            f"update_old and update_new must be aligned "
            f"({len(update_old)} != {len(update_new)})"
        )

    changes: List[RecordChange] = []
    for old, new in zip(update_old, update_new):
        unchanged = set()
        if old.record_ttl == new.record_ttl and old.proxied == new.proxied:
            unchanged = set(old.targets) & set(new.targets)
        old_targets = [target for target in old.targets if target not in unchanged]
        new_targets = [target for target in new.targets if target not in unchanged]

        paired = min(len(old_targets), len(new_targets))
        for old_target, new_target in zip(old_targets, new_targets):
            changes.append(
                RecordChange(
                    action=ChangeAction.UPDATE,
                    record=_draft(new, new_target),
                    previous=_draft(old, old_target),
                )
            )
        for old_target in old_targets[paired:]:
            changes.append(
                RecordChange(action=ChangeAction.DELETE, record=_draft(old, old_target))
            )
        for new_target in new_targets[paired:]:
            changes.append(
                RecordChange(action=ChangeAction.CREATE, record=_draft(new, new_target))
            )
    return changes


def plan_record_changes(changes: Changes) -> List[RecordChange]:
    """
    Order all operations of a Changes set: deletes, then updates, then creates.

    Args:
        changes: Changes to translate

    Returns:
        List[RecordChange]: Operations in execution order
    """
    return (
        new_record_changes(ChangeAction.DELETE, changes.delete)
        + new_update_changes(changes.update_old, changes.update_new)
        + new_record_changes(ChangeAction.CREATE, changes.create)
    )
