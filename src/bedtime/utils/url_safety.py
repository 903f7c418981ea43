"""
Outbound fetches of user-supplied URLs.

Image references come from clients (saved stories, the proxy endpoint), so
the server only fetches http(s) URLs whose host resolves exclusively to
public addresses. Redirects are followed by hand, a few hops at most, and
every hop is checked again.
"""

import ipaddress
import logging
import socket
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse

import requests

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3
REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class UnsafeURLError(ValueError):
    """The URL is not http(s) or points at a non-public address."""


def _resolve_host(host: str, port: int) -> List[str]:
    infos = socket.getaddrinfo(host, port, proto=socket.IPPROTO_TCP)
    return [info[4][0] for info in infos]


def _is_public(address: str) -> bool:
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    return ip.is_global and not ip.is_multicast


def ensure_public_url(url: str) -> None:
    """
    Reject URLs the server must not fetch.

    Raises:
        UnsafeURLError: For non-http(s) URLs, unresolvable hosts and hosts
            with any loopback, private, link-local or reserved address
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise UnsafeURLError("Only absolute http(s) URLs can be fetched")

    try:
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        addresses = _resolve_host(parsed.hostname, port)
    except (socket.gaierror, UnicodeError, ValueError) as e:
        raise UnsafeURLError(f"Could not resolve {parsed.hostname}: {e}")

    if not addresses or not all(_is_public(address) for address in addresses):
        logger.warning(f"Refusing to fetch {url}: {parsed.hostname} is not a public host")
        raise UnsafeURLError(f"{parsed.hostname} is not a public host")


def fetch_public_url(
    url: str,
    timeout: float,
    get: Optional[Callable[..., requests.Response]] = None,
) -> requests.Response:
    """
    GET ``url`` after ``ensure_public_url``, re-checking every redirect hop.

    Raises:
        UnsafeURLError: If the URL or a redirect target is not allowed
        requests.TooManyRedirects: After ``MAX_REDIRECTS`` hops
        requests.RequestException: For network failures
    """
    get = get or requests.get
    for _ in range(MAX_REDIRECTS + 1):
        ensure_public_url(url)
        response = get(url, timeout=timeout, allow_redirects=False)
        if response.status_code not in REDIRECT_STATUSES or not response.headers.get("location"):
            return response
        url = urljoin(url, response.headers["location"])
    raise requests.TooManyRedirects(f"More than {MAX_REDIRECTS} redirects")
