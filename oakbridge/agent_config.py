"""Agent configuration read from the environment."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ConfigError(ValueError):
    """Raised when a required setting is missing or malformed."""


def _to_int(text: str) -> Optional[int]:
    if _INTEGER.fullmatch(text) is None:
        return None
    return int(text)


def _warn_default(name: str, default: str) -> None:
    logger.warning(
        "WARNING: %s environment variable is not set or could not be parsed, "
        "using default value %s",
        name,
        default,
    )


# (environment variable, attribute, default shown in the warning)
_PORT_SETTINGS = (
    ("ROOT_SYSTEM_MANAGER_PORT", "root_system_manager_port", "10000"),
    ("ROOT_GRPC_PORT", "root_grpc_port", "50052"),
    ("NODE_PORT", "node_port", "30000"),
    ("CLUSTER_SERVICE_MANAGER_PORT", "network_component_port", "10110"),
    ("ROOT_SERIVCE_MANAGER_PORT", "root_service_manager_port", "10099"),
    ("MY_PORT", "my_port", "10100"),
)


@dataclass
class Config:
    """Addresses, ports and identity of the cluster agent."""

    root_system_manager_ip: str = ""
    cluster_name: str = "k8s"
    cluster_location: str = "Munich"
    cluster_service_manager_ip: str = "localhost"
    cluster_id: str = ""

    node_port: int = 30000
    my_port: int = 10100
    network_component_port: int = 10110
    root_grpc_port: int = 50052
    root_system_manager_port: int = 10000
    root_service_manager_port: int = 10099

    def read_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Override fields from environment variables."""
        env = os.environ if environ is None else environ

        ip = env.get("ROOT_SYSTEM_MANAGER_IP", "")
        if not ip:
            raise ConfigError("ROOT_SYSTEM_MANAGER_IP environment variable is not set")
        self.root_system_manager_ip = ip

        for name, attribute, default in _PORT_SETTINGS:
            if attribute == "root_grpc_port":
                self._read_str(env, "CLUSTER_SERVICE_MANAGER_IP",
                               "cluster_service_manager_ip", "localhost")
            raw = env.get(name, "")
            if not raw:
                _warn_default(name, default)
                continue
            value = _to_int(raw)
            if value is None:
                raise ConfigError(f"{name} environment variable not in right format")
            setattr(self, attribute, value)

        self._read_str(env, "CLUSTER_LOCATION", "cluster_location", "Munich")
        self._read_str(env, "CLUSTER_NAME", "cluster_name", "k8s")

    def _read_str(self, env: Mapping[str, str], name: str, attribute: str, default: str) -> None:
        value = env.get(name, "")
        if value:
            setattr(self, attribute, value)
        else:
            _warn_default(name, default)


def get_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build the agent configuration from defaults and the environment."""
    config = Config()
    config.read_env(environ)
    return config