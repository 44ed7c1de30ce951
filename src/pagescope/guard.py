"""Address safety guard and URL target parsing.

Classifies hostnames as forbidden (private, loopback or link-local) before any
network access. Literal addresses are classified directly; names are matched
against a small denylist. Names are not resolved unless the optional DNS check
is enabled, so a public name that resolves to a private address passes the
base check.
"""

from __future__ import annotations

import asyncio
import ipaddress
import re
import socket
from urllib.parse import urlsplit, urlunsplit

import structlog

from pagescope.errors import BlockedAddressError, InvalidInputError, SchemeError
from pagescope.models.analysis import URLTarget

log = structlog.get_logger()

ALLOWED_SCHEMES = frozenset({"http", "https"})
_DEFAULT_PORTS = {"http": 80, "https": 443}

FORBIDDEN_HOSTNAMES = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})
FORBIDDEN_SUFFIXES = (".local", ".localhost")

PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("::/128"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("fc00::/7"),
]

# Legacy inet_aton spellings such as "2130706433" or "0x7f.1"
_NUMERIC_HOST_RE = re.compile(r"(?:0x[0-9a-f]+|[0-9]+)(?:\.(?:0x[0-9a-f]+|[0-9]+)){0,3}")


def _clean_hostname(hostname: str) -> str:
    host = hostname.strip().lower()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host.rstrip(".")


def _parse_ip(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse an IP literal, including legacy numeric IPv4 forms. None for names."""
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        if not _NUMERIC_HOST_RE.fullmatch(host):
            return None
        try:
            addr = ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None

    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def _is_private_ip(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return any(addr in net for net in PRIVATE_NETWORKS)


def is_forbidden(hostname: str) -> bool:
    """Return True if *hostname* names private, loopback or link-local space."""
    host = _clean_hostname(hostname)
    if not host:
        return False

    if host in FORBIDDEN_HOSTNAMES:
        return True
    if host.endswith(FORBIDDEN_SUFFIXES):
        return True

    addr = _parse_ip(host)
    return addr is not None and _is_private_ip(addr)


def parse_target(url: str) -> URLTarget:
    """Parse and normalize an absolute http(s) URL.

    Raises ``SchemeError`` for any scheme other than http/https and
    ``InvalidInputError`` for relative or otherwise unusable URLs. No I/O.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as exc:
        raise InvalidInputError(f"Invalid URL {url!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    if not scheme:
        raise InvalidInputError(f"URL must be absolute: {url!r}")
    if scheme not in ALLOWED_SCHEMES:
        raise SchemeError(f"Scheme {scheme!r} is not allowed: {url}")

    host = _clean_hostname(parts.hostname or "")
    if not host:
        raise InvalidInputError(f"URL has no host: {url!r}")
    if parts.username is not None or parts.password is not None:
        raise InvalidInputError(
            f"Credentials in URLs are not supported: {url!r}",
            suggestion="Remove the user:password@ part of the URL.",
        )

    if port == _DEFAULT_PORTS[scheme]:
        port = None

    netloc = f"[{host}]" if ":" in host else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    path = parts.path or "/"

    return URLTarget(
        scheme=scheme,
        host=host,
        path=path,
        port=port,
        url=urlunsplit((scheme, netloc, path, parts.query, "")),
    )


def normalize_url(url: str) -> str:
    """Return the normalized form of *url* used as the cache key."""
    return parse_target(url).url


def ensure_allowed(target: URLTarget) -> None:
    """Raise ``BlockedAddressError`` if the target host is forbidden."""
    if is_forbidden(target.host):
        log.warning("address_blocked", url=target.url, host=target.host)
        raise BlockedAddressError(f"Refusing to fetch private or local address: {target.host}")


async def ensure_resolved_allowed(target: URLTarget) -> None:
    """Resolve the target host and reject it if any address is forbidden.

    Resolution failures are not treated as blocks; the HTTP client reports
    them when it attempts the connection.
    """
    if _parse_ip(target.host) is not None:
        return

    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(
            target.host,
            target.port or _DEFAULT_PORTS[target.scheme],
            proto=socket.IPPROTO_TCP,
        )
    except socket.gaierror:
        log.debug("dns_resolution_failed", host=target.host)
        return

    for info in infos:
        addr = _parse_ip(str(info[4][0]).split("%", 1)[0])
        if addr is not None and _is_private_ip(addr):
            log.warning(
                "address_blocked",
                url=target.url,
                host=target.host,
                resolved=str(addr),
            )
            raise BlockedAddressError(
                f"Host {target.host} resolves to a private or local address: {addr}"
            )
