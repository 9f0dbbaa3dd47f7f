"""Resolve the client address an inbound request is evaluated against."""

from typing import Mapping, Optional


IPV4_MAPPED_PREFIX = "::ffff:"


def resolve_client_ip(
    headers: Mapping[str, str],
    remote: Optional[str],
    forwarded_header: str = "X-Forwarded-For",
    trust_forwarded: bool = True,
) -> str:
    """
    Pick the address to check against the allow-list.

    With a trusted reverse proxy in front, the first entry of the forwarded
    header is the original client. Otherwise the connection address is used,
    with the IPv4-mapped IPv6 prefix removed. The proxy chain depth is not
    validated: exactly one proxy is assumed to set the header.

    Returns an empty string when nothing usable is found; the matcher
    rejects it.
    """
    if trust_forwarded:
        forwarded = headers.get(forwarded_header) or ""
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    address = (remote or "").strip()
    if address.lower().startswith(IPV4_MAPPED_PREFIX):
        address = address[len(IPV4_MAPPED_PREFIX):]
    return address
