"""
Input validation helpers shared by the validator and the defaulter.
"""

import ipaddress
import posixpath
import re
from enum import Enum
from typing import Tuple, Type, Union

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# Closed intervals of legal block sizes per address family.
BLOCK_SIZE_RANGES = {
    4: (20, 32),
    6: (116, 128),
}


def parse_cidr(cidr: str) -> IPNetwork:
    """
    Parse an IPv4 or IPv6 CIDR.

    Host bits may be set (e.g., "192.168.0.1/24" yields 192.168.0.0/24). The
    prefix must be a decimal length; netmasks and IPv6 zones are rejected.

    Args:
        cidr: Address with prefix length (e.g., "192.168.0.0/16")

    Returns:
        The parsed network

    Raises:
        ValueError: If the CIDR is invalid
    """
    if not cidr:
        raise ValueError("CIDR cannot be empty")

    if cidr.count("/") != 1:
        raise ValueError("CIDR must be in format IP/PREFIX (e.g., 192.168.0.0/16)")

    address, prefix = cidr.split("/")
    # ipaddress also takes netmask and hostmask suffixes.
    if not (prefix.isascii() and prefix.isdigit()):
        raise ValueError(f"Invalid CIDR format: prefix length '{prefix}' is not a decimal number")
    if "%" in address:
        raise ValueError(f"Invalid CIDR format: zone in address '{address}' is not allowed")

    try:
        return ipaddress.ip_network(cidr, strict=False)
    except ValueError as e:
        raise ValueError(f"Invalid CIDR format: {e}")


def block_size_range(version: int) -> Tuple[int, int]:
    """Return the inclusive (min, max) block size for an IP version."""
    return BLOCK_SIZE_RANGES[version]


def is_absolute_path(path: str) -> bool:
    return posixpath.isabs(path)


def is_member(value: str, choices: Type[Enum]) -> bool:
    """Case-sensitive membership check of a string against an enum's values."""
    return any(value == choice.value for choice in choices)


def allowed_values(choices: Type[Enum]) -> str:
    return ", ".join(repr(choice.value) for choice in choices)


def validate_ip(address: str) -> None:
    """
    Validate an IPv4 or IPv6 address string.

    Raises:
        ValueError: If the address is invalid
    """
    try:
        ipaddress.ip_address(address)
    except ValueError as e:
        raise ValueError(f"Invalid IP address: {e}")


def validate_regex(pattern: str) -> None:
    """
    Validate that a pattern compiles as a regular expression.

    Raises:
        ValueError: If the pattern does not compile
    """
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regular expression: {e}")
