"""
IPv4 allow-list matching.

Allow-list entries are parsed once at startup into inclusive integer
ranges. Entries that do not parse are dropped with a warning so a typo
shrinks the allow-list instead of preventing startup. Candidate addresses
that do not parse as IPv4 never match.
"""

import re
from ipaddress import IPv4Address
from typing import Iterable, NamedTuple, Optional, Tuple

from dashboard_gate.utils.logging import get_service_logger


_OCTET = re.compile(r"\d{1,3}", re.ASCII)
_PREFIX = re.compile(r"\d{1,2}", re.ASCII)

MAX_UINT32 = 0xFFFFFFFF


class AddressRange(NamedTuple):
    """Inclusive bounds of one CIDR block as 32-bit integers."""
    start: int
    end: int

    def __contains__(self, value: int) -> bool:
        return self.start <= value <= self.end

    def __str__(self) -> str:
        return f"{IPv4Address(self.start)}-{IPv4Address(self.end)}"


def ipv4_to_int(address: str) -> Optional[int]:
    """
    Pack a dotted quad into an unsigned 32-bit integer, big-endian.

    Returns None unless there are exactly four decimal octets in 0-255.
    """
    if not isinstance(address, str):
        return None
    parts = address.split(".")
    if len(parts) != 4:
        return None

    value = 0
    for part in parts:
        if not _OCTET.fullmatch(part):
            return None
        octet = int(part)
        if octet > 255:
            return None
        value = (value << 8) | octet
    return value


def parse_cidr(spec: str) -> Optional[AddressRange]:
    """
    Parse ``a.b.c.d/n`` or a bare ``a.b.c.d`` (taken as /32).

    Returns None for anything that is not a valid IPv4 CIDR block.
    """
    address, sep, prefix = spec.strip().partition("/")
    base = ipv4_to_int(address)
    if base is None:
        return None

    if sep:
        if not _PREFIX.fullmatch(prefix):
            return None
        bits = int(prefix)
        if bits > 32:
            return None
    else:
        bits = 32

    mask = (MAX_UINT32 << (32 - bits)) & MAX_UINT32
    start = base & mask
    end = start | (~mask & MAX_UINT32)
    return AddressRange(start, end)


def build_ranges(specs: Iterable[str]) -> Tuple[AddressRange, ...]:
    """Parse every entry, dropping the ones that are invalid."""
    logger = get_service_logger("gate")
    ranges = []
    for spec in specs:
        parsed = parse_cidr(spec)
        if parsed is None:
            logger.warning("Ignoring invalid allow-list entry", entry=spec)
            continue
        ranges.append(parsed)
    return tuple(ranges)


def ip_allowed(address: str, ranges: Iterable[AddressRange]) -> bool:
    """True if ``address`` is IPv4 and falls inside any of the ranges."""
    value = ipv4_to_int(address)
    if value is None:
        return False
    return any(value in r for r in ranges)
