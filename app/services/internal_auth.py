from __future__ import annotations

import ipaddress
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


@dataclass(frozen=True, slots=True)
class InternalAccessDecision:
    allowed: bool
    client_ip: str | None
    reason: str | None = None


def _presented_tokens(headers: Mapping[str, str]) -> list[str]:
    tokens: list[str] = []
    header_token = (headers.get(INTERNAL_TOKEN_HEADER) or "").strip()
    if header_token:
        tokens.append(header_token)

    scheme, _, credentials = (headers.get("Authorization") or "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        tokens.append(credentials.strip())
    return tokens


def token_matches(*, expected_token: str, headers: Mapping[str, str]) -> bool:
    if not expected_token:
        return False
    return any(
        secrets.compare_digest(expected_token.encode(), token.encode())
        for token in _presented_tokens(headers)
    )


@lru_cache(maxsize=32)
def parse_networks(spec: str) -> tuple[IPNetwork, ...]:
    """Parse a comma separated list of IPs/CIDRs, ignoring blanks and garbage."""
    networks: list[IPNetwork] = []
    for entry in filter(None, (part.strip() for part in spec.split(","))):
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _as_ip(value: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address((value or "").strip())
    except ValueError:
        return None


def ip_in_networks(client_ip: str | None, spec: str) -> bool:
    address = _as_ip(client_ip)
    return address is not None and any(address in network for network in parse_networks(spec))


def resolve_client_ip(
    *,
    peer_host: str | None,
    headers: Mapping[str, str],
    trusted_proxies: str = "",
) -> str | None:
    peer = _as_ip(peer_host)
    forwarded_for = headers.get("X-Forwarded-For")
    if forwarded_for and peer is not None and ip_in_networks(str(peer), trusted_proxies):
        original = _as_ip(forwarded_for.split(",", maxsplit=1)[0])
        return str(original) if original is not None else None
    return str(peer) if peer is not None else None


def evaluate_internal_access(
    *,
    peer_host: str | None,
    headers: Mapping[str, str],
    expected_token: str,
    allowlist: str,
    trusted_proxies: str = "",
) -> InternalAccessDecision:
    client_ip = resolve_client_ip(
        peer_host=peer_host,
        headers=headers,
        trusted_proxies=trusted_proxies,
    )
    if not ip_in_networks(client_ip, allowlist):
        return InternalAccessDecision(allowed=False, client_ip=client_ip, reason="ip_not_allowed")
    if not token_matches(expected_token=expected_token, headers=headers):
        return InternalAccessDecision(
            allowed=False,
            client_ip=client_ip,
            reason="invalid_credentials",
        )
    return InternalAccessDecision(allowed=True, client_ip=client_ip)
