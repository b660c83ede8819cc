"""
Address derivation for testbed nodes

Ports are additive offsets from a base port: swarm on base + index, API on
base + 1000 + index. External tooling computes node addresses from the same
formula, so it must not change.
"""

from multiaddr import Multiaddr

from ..errors import ConfigurationError

API_PORT_OFFSET = 1000
WILDCARD_IP4 = "0.0.0.0"
LOOPBACK_IP4 = "127.0.0.1"


def swarm_addr(port_start: int, index: int) -> str:
    return f"/ip4/{WILDCARD_IP4}/tcp/{port_start + index}"


def api_addr(port_start: int, index: int) -> str:
    return f"/ip4/{LOOPBACK_IP4}/tcp/{port_start + API_PORT_OFFSET + index}"


def bootstrap_addr(swarm: str, peer_id: str) -> str:
    """Dialable bootstrap entry for a peer listening on `swarm`"""
    addr = f"{swarm}/ipfs/{peer_id}"
    return addr.replace(WILDCARD_IP4, LOOPBACK_IP4)


def dial_address(maddr: str) -> str:
    """
    Convert a TCP multiaddress into a host:port string

    Raises ConfigurationError for addresses without an ip4/ip6/dns host
    and a tcp port.
    """
    try:
        addr = Multiaddr(maddr)
        names = [p.name for p in addr.protocols()]
        port = addr.value_for_protocol('tcp')
    except (ValueError, LookupError) as e:
        raise ConfigurationError(f"cannot dial {maddr!r}: {e}") from e

    if 'ip4' in names:
        host = addr.value_for_protocol('ip4')
    elif 'ip6' in names:
        host = f"[{addr.value_for_protocol('ip6')}]"
    elif 'dns4' in names:
        host = addr.value_for_protocol('dns4')
    else:
        raise ConfigurationError(f"cannot dial {maddr!r}: no host component")

    return f"{host}:{port}"
