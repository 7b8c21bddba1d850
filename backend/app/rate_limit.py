"""Rate limiting for the payment gate.

``/verify`` triggers an upstream RPC call per request, so it is limited per
client IP. Forwarded headers are only trusted from configured proxy ranges.
"""

import ipaddress
from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("paygate.rate_limit")


@lru_cache
def _trusted_networks() -> tuple:
    networks = []
    for cidr in get_settings().trusted_proxy_cidrs:
        try:
            networks.append(ipaddress.ip_network(cidr.strip(), strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {cidr!r}")
    return tuple(networks)


def _from_trusted_proxy(peer: str) -> bool:
    try:
        addr = ipaddress.ip_address(peer)
    except ValueError:
        return False
    return any(addr in network for network in _trusted_networks())


def get_client_ip(request) -> str:
    """Rate limit key for a request.

    The connecting peer, unless that peer is one of our proxies, in which case
    the first hop it reports in X-Forwarded-For.
    """
    peer = get_remote_address(request)
    if not _from_trusted_proxy(peer):
        return peer
    first_hop = request.headers.get("x-forwarded-for", "").partition(",")[0].strip()
    return first_hop or peer


def verify_rate_limit() -> str:
    return get_settings().verify_rate_limit


limiter = Limiter(key_func=get_client_ip)
