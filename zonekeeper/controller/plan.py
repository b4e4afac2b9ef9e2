"""
Plan module for Zonekeeper.

This module is responsible for calculating the changes needed to bring the current state
in line with the desired state.
"""

import logging
from typing import Dict, List

from zonekeeper.models.models import Changes, Endpoint

POLICIES = ("sync", "upsert-only", "create-only")


class Plan:
    """
    Plan calculates the changes needed to bring the current state in line with the desired state.
    """

    def __init__(
        self, current: List[Endpoint], desired: List[Endpoint], policy: str = "sync"
    ):
        """
        Initialize a Plan.

        Args:
            current: Current endpoints
            desired: Desired endpoints
            policy: Synchronization policy (sync, upsert-only, create-only)

        Raises:
            ValueError: Unknown policy
        """
        if policy not in POLICIES:
            raise ValueError(f"unknown policy {policy!r}, expected one of {POLICIES}")
        self.current = current
        self.desired = desired
        self.policy = policy
        self.logger = logging.getLogger("zonekeeper.plan")

    def calculate_changes(self) -> Changes:
        """
        Calculate the changes needed to bring the current state in line with the desired state.

        Returns:
            Changes: Changes to be applied
        """
        changes = Changes()

        current_by_id: Dict[str, Endpoint] = {
            endpoint.id: endpoint for endpoint in self.current
        }

        for desired_endpoint in self.desired:
            current_endpoint = current_by_id.get(desired_endpoint.id)

            if current_endpoint is None:
                self.logger.info(f"Endpoint {desired_endpoint.id} will be created")
                changes.create.append(desired_endpoint)
            elif self.policy == "create-only":
                self.logger.debug(f"Endpoint {desired_endpoint.id} exists, create-only policy")
            elif self._needs_update(current_endpoint, desired_endpoint):
                self.logger.info(f"Endpoint {desired_endpoint.id} needs update")
                changes.update_old.append(current_endpoint)
                changes.update_new.append(desired_endpoint)
            else:
                self.logger.debug(f"Endpoint {desired_endpoint.id} is up-to-date")

        if self.policy == "sync":
            desired_ids = {endpoint.id for endpoint in self.desired}
            for current_endpoint in self.current:
                if current_endpoint.id not in desired_ids:
                    self.logger.debug(
                        f"Endpoint {current_endpoint.id} identified as no longer desired."
                    )
                    changes.delete.append(current_endpoint)

        return changes

    @staticmethod
    def _needs_update(current: Endpoint, desired: Endpoint) -> bool:
        """
        Check if an endpoint needs to be updated.

        Args:
            current: Current endpoint
            desired: Desired endpoint

        Returns:
            bool: True if the endpoint needs to be updated, False otherwise
        """
        if set(current.targets) != set(desired.targets):
            return True

        # No desired TTL means whatever the provider defaults to
        if desired.record_ttl is not None and current.record_ttl != desired.record_ttl:
            return True

        if current.proxied != desired.proxied:
            return True

        return False
