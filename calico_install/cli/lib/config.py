"""
Configuration loader for calico-install.

Holds the site-specific values the defaulter falls back to (default IP pool,
block sizes, node selector) and the API server bind address.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path


CONFIG_PATH_ENV = "CALICO_INSTALL_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path("/etc/calico-install/calico-install.conf")


@dataclass(frozen=True)
class CalicoInstallConfig:
    default_ipv4_pool_cidr: str = "192.168.0.0/16"
    default_ipv4_block_size: int = 26
    default_ipv6_block_size: int = 122
    default_node_selector: str = "all()"
    api_host: str = "127.0.0.1"
    api_port: int = 8080


def _config_path() -> Path:
    env = os.environ.get(CONFIG_PATH_ENV)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def load_config() -> CalicoInstallConfig:
    """
    Load config from `CALICO_INSTALL_CONFIG_PATH` or
    `/etc/calico-install/calico-install.conf`.

    Missing files and sections are not an error; defaults are returned.
    """
    parser = _read_ini(_config_path())

    installation_section = parser["installation"] if parser.has_section("installation") else {}
    api_section = parser["api"] if parser.has_section("api") else {}

    def _get(section: object, key: str, default: str) -> str:
        if isinstance(section, dict):
            return str(section.get(key, default)).strip()
        return str(section.get(key, fallback=default)).strip()

    def _get_int(section: object, key: str, default: int) -> int:
        raw = _get(section, key, str(default))
        try:
            return int(raw)
        except ValueError:
            return default

    defaults = CalicoInstallConfig()
    return CalicoInstallConfig(
        default_ipv4_pool_cidr=_get(installation_section, "default_ipv4_pool_cidr", defaults.default_ipv4_pool_cidr),
        default_ipv4_block_size=_get_int(
            installation_section, "default_ipv4_block_size", defaults.default_ipv4_block_size
        ),
        default_ipv6_block_size=_get_int(
            installation_section, "default_ipv6_block_size", defaults.default_ipv6_block_size
        ),
        default_node_selector=_get(installation_section, "default_node_selector", defaults.default_node_selector),
        api_host=_get(api_section, "api_host", defaults.api_host),
        api_port=_get_int(api_section, "api_port", defaults.api_port),
    )
