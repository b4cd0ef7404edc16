"""
Source text fetcher — download a web page and extract the readable article text.

Extraction prefers <article>, then <main>, then <body>; scripts, navigation and
other chrome are dropped before reading the text. Only public addresses are
fetched: loopback, private, link-local and reserved hosts are refused.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from newsdesk.core.errors import InvalidSourceUrl, SourceFetchError
from newsdesk.core.logging import get_logger

logger = get_logger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
_NOISE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form", "iframe")
MAX_REDIRECTS = 5


def validate_url(url: str) -> str:
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidSourceUrl(f"Not an absolute http(s) URL: {url!r}")
    return parsed.geturl()


def _is_public(address: str) -> bool:
    ip = ipaddress.ip_address(address)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    return not (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


async def _resolve_host(host: str, port: int) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


async def ensure_public_host(url: str) -> None:
    """Refuse URLs whose host is, or resolves to, a non-public address."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    try:
        addresses = [str(ipaddress.ip_address(host))]
    except ValueError:
        try:
            addresses = await _resolve_host(host, port)
        except OSError as e:
            raise SourceFetchError(f"Could not resolve {host}: {e}") from e
    blocked = [address for address in addresses if not _is_public(address)]
    if blocked or not addresses:
        logger.warning("source_host_blocked", url=url, addresses=blocked)
        raise InvalidSourceUrl(f"Refusing to fetch non-public address for {host}")


def extract_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = container.find_all("p")
    if paragraphs:
        lines = [p.get_text(" ", strip=True) for p in paragraphs]
    else:
        lines = [line.strip() for line in container.get_text("\n").splitlines()]
    return "\n\n".join(line for line in lines if line)


async def fetch_source_text(
    url: str,
    *,
    timeout: float = 20.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Download ``url`` and return its article text. ``transport`` is for tests.

    Redirects are followed one hop at a time so every target host is checked.
    """
    target = validate_url(url)
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            headers={"User-Agent": _USER_AGENT},
            transport=transport,
        ) as client:
            for _ in range(MAX_REDIRECTS + 1):
                await ensure_public_host(target)
                resp = await client.get(target)
                if not resp.is_redirect:
                    break
                target = validate_url(urljoin(str(resp.url), resp.headers.get("location", "")))
            else:
                raise SourceFetchError(f"Too many redirects fetching {url}")
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("source_fetch_failed", url=target, error=str(e))
        raise SourceFetchError(f"Could not fetch {target}: {e}") from e

    text = extract_text(resp.text)
    logger.info("source_fetched", url=target, chars=len(text))
    return text
