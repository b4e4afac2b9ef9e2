"""
Configuration module for Zonekeeper.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from zonekeeper.controller.plan import POLICIES

PROVIDERS = ("cloudflare", "digitalocean")


class Config(BaseModel):
    """Configuration for Zonekeeper."""

    # Provider configuration
    provider: str = "cloudflare"
    cloudflare_api_token: str = ""
    cloudflare_max_retries: int = 2
    digitalocean_token: str = ""
    digitalocean_retries: int = 2
    page_size: int = Field(default=100, ge=1, le=500)

    # Controller configuration
    interval: str = "1m"
    once: bool = False
    dry_run: bool = False
    policy: str = "sync"
    parallel_zones: bool = False
    zone_miss_log_level: Optional[str] = "debug"

    # Domain filtering
    domain_filter: List[str] = Field(default_factory=list)
    exclude_domains: List[str] = Field(default_factory=list)

    # Logging configuration
    log_level: str = "info"

    @field_validator("provider")
    @classmethod
    def _check_provider(cls, value: str) -> str:
        value = value.lower()
        if value not in PROVIDERS:
            raise ValueError(f"provider must be one of {PROVIDERS}")
        return value

    @field_validator("policy")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        if value not in POLICIES:
            raise ValueError(f"policy must be one of {POLICIES}")
        return value

    @field_validator("zone_miss_log_level")
    @classmethod
    def _check_zone_miss_log_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value.lower() in ("", "none", "off"):
            return None
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown log level {value!r}")
        return value.lower()

    @property
    def zone_miss_level(self) -> Optional[int]:
        """Numeric log level for zone resolution misses, None when silent."""
        if self.zone_miss_log_level is None:
            return None
        return logging.getLevelName(self.zone_miss_log_level.upper())

    @classmethod
    def from_yaml(cls, config_path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Config: Config instance populated with values from the YAML file
        """
        default_paths = [
            Path("./zonekeeper.yaml"),
            Path("./zonekeeper.yml"),
            Path("/etc/zonekeeper/config.yaml"),
        ]

        if config_path:
            paths = [Path(config_path)]
        else:
            paths = default_paths

        config_data = {}
        for path in paths:
            if path.exists():
                with open(path, "r") as f:
                    yaml_content = cls._substitute_env_vars(f.read())
                    config_data = yaml.safe_load(yaml_content) or {}
                break

        return cls(**cls._flatten_config(config_data))

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """
        Substitute environment variables in the configuration content.

        Args:
            content: Configuration content

        Returns:
            str: Configuration content with environment variables substituted
        """
        # ${ENV_VAR} or ${ENV_VAR:-default}
        pattern = r"\${([^}]+)}"

        def replace_env_var(match):
            env_var = match.group(1)
            if ":-" in env_var:
                env_var, default = env_var.split(":-", 1)
                return os.environ.get(env_var, default)
            return os.environ.get(env_var, "")

        return re.sub(pattern, replace_env_var, content)

    @staticmethod
    def _flatten_config(config_data: dict) -> dict:
        """
        Flatten nested configuration.

        Args:
            config_data: Nested configuration data

        Returns:
            dict: Flattened configuration data
        """
        flat_config = {}

        provider = config_data.get("provider") or {}
        flat_config["provider"] = provider.get("name", "cloudflare")
        flat_config["page_size"] = provider.get("page_size", 100)

        cloudflare = provider.get("cloudflare") or {}
        flat_config["cloudflare_api_token"] = cloudflare.get("api_token", "")
        flat_config["cloudflare_max_retries"] = cloudflare.get("max_retries", 2)

        digitalocean = provider.get("digitalocean") or {}
        flat_config["digitalocean_token"] = digitalocean.get("token", "")
        flat_config["digitalocean_retries"] = digitalocean.get("retries", 2)

        controller = config_data.get("controller") or {}
        flat_config["interval"] = controller.get("interval", "1m")
        flat_config["once"] = controller.get("once", False)
        flat_config["dry_run"] = controller.get("dry_run", False)
        flat_config["policy"] = controller.get("policy", "sync")
        flat_config["parallel_zones"] = controller.get("parallel_zones", False)
        flat_config["zone_miss_log_level"] = controller.get("zone_miss_log_level", "debug")

        domains = config_data.get("domains") or {}
        flat_config["domain_filter"] = domains.get("include") or []
        flat_config["exclude_domains"] = domains.get("exclude") or []

        logging_config = config_data.get("logging") or {}
        flat_config["log_level"] = logging_config.get("level", "info")

        return flat_config

    def parse_duration(self, duration_str: str) -> int:
        """
        Parse a duration string like '15m' into seconds.

        Args:
            duration_str: Duration string

        Returns:
            int: Duration in seconds
        """
        if not duration_str:
            return 60

        match = re.match(r"^(\d+)([smhd])$", duration_str)
        if not match:
            return 60

        value, unit = match.groups()
        value = int(value)

        if unit == "s":
            return value
        elif unit == "m":
            return value * 60
        elif unit == "h":
            return value * 60 * 60
        return value * 60 * 60 * 24
