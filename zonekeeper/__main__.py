"""
Main entry point for Zonekeeper.

Usage: python -m zonekeeper [CONFIG] [DESIRED]

DESIRED is a YAML file listing the endpoints that should exist. Without it the
current endpoints of the managed zones are printed.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

import yaml

from zonekeeper import __version__
from zonekeeper.config.config import Config
from zonekeeper.controller.plan import Plan
from zonekeeper.models.models import Endpoint
from zonekeeper.provider.cloudflare import CloudflareClient
from zonekeeper.provider.digitalocean import DigitalOceanClient
from zonekeeper.provider.domain_filter import DomainFilter
from zonekeeper.provider.provider import DNSProvider

logger = logging.getLogger("zonekeeper")


def build_provider(config: Config) -> DNSProvider:
    """
    Build the provider described by the configuration.

    Raises:
        CredentialError: The configured backend has no token
    """
    if config.provider == "digitalocean":
        client = DigitalOceanClient(
            config.digitalocean_token or None,
            page_size=config.page_size,
            retries=config.digitalocean_retries,
        )
    else:
        client = CloudflareClient(
            config.cloudflare_api_token,
            page_size=config.page_size,
            max_retries=config.cloudflare_max_retries,
        )
    return DNSProvider(
        client,
        domain_filter=DomainFilter(config.domain_filter, config.exclude_domains),
        dry_run=config.dry_run,
        parallel_zones=config.parallel_zones,
        zone_miss_log_level=config.zone_miss_level,
    )


def load_desired(path: Union[str, Path]) -> List[Endpoint]:
    """
    Load desired endpoints from a YAML file with an ``endpoints`` list.
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    endpoints = []
    for item in data.get("endpoints") or []:
        targets = item.get("targets")
        if isinstance(targets, str):
            targets = [targets]
        endpoints.append(
            Endpoint(
                dnsname=item["dnsname"],
                targets=list(targets or []),
                record_type=str(item.get("record_type", "A")).upper(),
                record_ttl=item.get("record_ttl"),
                proxied=bool(item.get("proxied", False)),
            )
        )
    return endpoints


async def reconcile(provider: DNSProvider, desired_path: Path, policy: str) -> None:
    """Run a single reconciliation cycle."""
    desired = []
    for endpoint in load_desired(desired_path):
        if endpoint.record_type not in provider.record_types:
            logger.warning(f"Record type {endpoint.record_type} of {endpoint.dnsname} is not managed, skipping.")
            continue
        desired.append(endpoint)
    current = await provider.records()
    changes = Plan(current, desired, policy=policy).calculate_changes()

    if not changes.has_changes():
        logger.debug("No changes to apply")
        return

    logger.info(
        f"Applying changes: {len(changes.create)} creates, "
        f"{len(changes.update_old)} updates, {len(changes.delete)} deletes"
    )
    await provider.apply_changes(changes)


async def run_reconciliation_loop(
    provider: DNSProvider, desired_path: Path, policy: str, interval: int
) -> None:
    """Reconcile every interval seconds. A failed cycle is retried on the next one."""
    logger.debug(f"Reconciliation loop starting with interval {interval} seconds")
    while True:
        try:
            await reconcile(provider, desired_path, policy)
        except Exception as e:
            logger.error(f"Error in reconciliation: {e}", exc_info=True)
        await asyncio.sleep(interval)


async def show_records(provider: DNSProvider) -> None:
    for endpoint in await provider.records():
        ttl = endpoint.record_ttl if endpoint.record_ttl is not None else "auto"
        print(f"{endpoint.dnsname}\t{ttl}\t{endpoint.record_type}\t{', '.join(endpoint.targets)}")


async def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logger.info(f"Starting Zonekeeper v{__version__}")

    config_path = Path(argv[0]) if len(argv) > 0 else None
    desired_path = Path(argv[1]) if len(argv) > 1 else None
    config = Config.from_yaml(config_path)

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)
    # Set httpx logger level to WARNING unless root is DEBUG
    httpx_log_level = logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_log_level)

    provider = build_provider(config)

    if desired_path is None:
        await show_records(provider)
    elif config.once:
        await reconcile(provider, desired_path, config.policy)
    else:
        await run_reconciliation_loop(
            provider, desired_path, config.policy, config.parse_duration(config.interval)
        )


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down Zonekeeper")
        sys.exit(0)


if __name__ == "__main__":
    run()
