"""Metadata fetching for bookmark links: page title and thumbnail."""
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; Auramark/1.0; +metadata-fetcher)'
DEFAULT_TIMEOUT = 5.0
MAX_TITLE_LENGTH = 200


class MetadataFetchError(Exception):
    """Base class for metadata fetch failures."""


class UpstreamStatusError(MetadataFetchError):
    """The page answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"Page returned HTTP {status_code}")


class NoResponseError(MetadataFetchError):
    """The request timed out or the connection failed before any response."""


class RequestSetupError(MetadataFetchError):
    """The request could not be made: bad URL, blocked host, or similar."""


class SSRFBlockedError(RequestSetupError):
    """Raised when a URL targets a private/internal network address."""


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname so a public name pointing at an internal address is
    refused too.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        RequestSetupError: If the URL is malformed or the host cannot be resolved.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        raise RequestSetupError(f"Unsupported URL scheme: {url}")
    hostname = parsed.hostname
    if not hostname:
        raise RequestSetupError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise RequestSetupError(f"Could not resolve hostname: {hostname}") from e
    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class PageMetadata:
    """Title and thumbnail of a page; either may be missing."""

    title: str | None
    thumbnail: str | None


def _meta_content(soup: BeautifulSoup, key: str) -> str | None:
    tag = soup.find('meta', property=key) or soup.find('meta', attrs={'name': key})
    if tag and tag.get('content') and tag['content'].strip():
        return tag['content'].strip()
    return None


def clean_title(title: str | None) -> str | None:
    """Collapse whitespace; cut titles over 200 characters to 197 plus '...'."""
    if not title:
        return None
    collapsed = re.sub(r'\s+', ' ', title).strip()
    if not collapsed:
        return None
    if len(collapsed) > MAX_TITLE_LENGTH:
        return collapsed[:MAX_TITLE_LENGTH - 3] + '...'
    return collapsed


def extract_metadata(html: str, page_url: str) -> PageMetadata:
    """
    Extract title and thumbnail from HTML.

    Pure function with no I/O.

    Title priority: og:title, twitter:title, <title>.
    Thumbnail priority: og:image, twitter:image, then the page favicon. Relative
    links are resolved against page_url.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = _meta_content(soup, 'og:title') or _meta_content(soup, 'twitter:title')
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.string:
            title = title_tag.string

    thumbnail = _meta_content(soup, 'og:image') or _meta_content(soup, 'twitter:image')
    if not thumbnail:
        icon = soup.find(
            'link',
            rel=lambda rel: rel is not None and rel.lower() in ('icon', 'shortcut icon'),
        )
        if icon and icon.get('href'):
            thumbnail = icon['href'].strip()

    return PageMetadata(
        title=clean_title(title),
        thumbnail=urljoin(page_url, thumbnail) if thumbnail else None,
    )


async def fetch_metadata(url: str, timeout: float = DEFAULT_TIMEOUT) -> PageMetadata:  # noqa: ASYNC109
    """
    Fetch a page and extract its title and thumbnail.

    Follows redirects; the final URL is checked against the private network
    guard as well.

    Raises:
        UpstreamStatusError: If the page answers with a non-2xx status.
        NoResponseError: On timeout or connection failure.
        RequestSetupError: If the URL is invalid or targets a blocked host.
    """
    url = url.strip()
    validate_url_not_private(url)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException as e:
        logger.info("Metadata fetch timed out for %s", url)
        raise NoResponseError("Request timed out") from e
    except (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError) as e:
        logger.info("Metadata fetch got no response from %s: %s", url, e)
        raise NoResponseError(f"No response from {url}") from e
    except httpx.RequestError as e:
        raise RequestSetupError(f"Request failed: {e}") from e

    final_url = str(response.url)
    validate_url_not_private(final_url)

    if not response.is_success:
        raise UpstreamStatusError(response.status_code, final_url)

    return extract_metadata(response.text, final_url)
