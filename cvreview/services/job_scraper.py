from __future__ import annotations

import ipaddress
import logging
import re
import socket
from urllib.parse import urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from cvreview.core.config import settings

logger = logging.getLogger(__name__)

JINA_READER_PREFIX = "https://r.jina.ai/"
MAX_SCRAPED_CHARS = 50000
MIN_USEFUL_CHARS = 200

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9,it;q=0.8",
}

_AUTH_WALL_MARKERS = (
    "sign in to continue",
    "log in to continue",
    "verify you are human",
    "access denied",
    "enable javascript",
)


def normalize_job_url(raw_url: str) -> tuple[str, str]:
    value = (raw_url or "").strip()
    if not value:
        raise ValueError("Job offer URL is required.")
    if not re.match(r"^[a-z][a-z0-9+.-]*://", value, flags=re.IGNORECASE):
        value = f"https://{value}"
    parsed = urlparse(value)
    if parsed.scheme.lower() not in {"http", "https"}:
        raise ValueError("Only http/https job offer URLs are supported.")
    hostname = (parsed.hostname or "").lower().strip()
    if not hostname:
        raise ValueError("Invalid job offer URL host.")
    normalized = urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), parsed.path or "/", "", parsed.query, "")
    )
    return normalized, hostname


def host_is_private_or_local(hostname: str) -> bool:
    host = (hostname or "").strip().lower()
    if host in {"localhost", "127.0.0.1", "::1"} or host.endswith(".local"):
        return True
    try:
        ip = ipaddress.ip_address(host)
        return bool(ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved)
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None)
    except OSError:
        return False
    for _family, _socktype, _proto, _canon, sockaddr in infos:
        try:
            resolved = ipaddress.ip_address(sockaddr[0])
        except (ValueError, IndexError):
            continue
        if resolved.is_private or resolved.is_loopback or resolved.is_link_local or resolved.is_reserved:
            return True
    return False


def _collapse(text: str) -> str:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = re.sub(r"[ \t]{2,}", " ", normalized)
    normalized = re.sub(r"\n\s*\n+", "\n", normalized)
    return normalized.strip()[:MAX_SCRAPED_CHARS]


def html_to_job_text(page_html: str) -> str:
    """Visible page text, prefixed with a JOB TITLE line when the page has an <h1>."""
    soup = BeautifulSoup(page_html or "", "html.parser")
    parts: list[str] = []
    heading = soup.find("h1")
    if heading:
        title = heading.get_text(" ", strip=True)
        if title:
            parts.append(f"JOB TITLE: {title}")

    for tag in soup(["script", "style", "noscript", "nav", "footer"]):
        tag.decompose()
    body = soup.body or soup
    parts.append(body.get_text("\n", strip=True))
    return _collapse("\n".join(parts))


def _fetch_via_reader(client: httpx.Client, url: str) -> str:
    response = client.get(f"{JINA_READER_PREFIX}{url}")
    if response.status_code != 200:
        logger.info("job_scraper_reader_status url=%s status=%s", url, response.status_code)
        return ""
    return _collapse(response.text or "")


def _fetch_direct(client: httpx.Client, url: str) -> str:
    response = client.get(url)
    if response.status_code in {401, 403, 429}:
        logger.info("job_scraper_blocked url=%s status=%s", url, response.status_code)
        return ""
    response.raise_for_status()
    page_html = response.text or ""
    lowered = page_html.lower()
    if any(marker in lowered for marker in _AUTH_WALL_MARKERS) and len(page_html) < 5000:
        logger.info("job_scraper_auth_wall url=%s", url)
        return ""
    return html_to_job_text(page_html)


def _refuse_private_redirect(response: httpx.Response) -> None:
    if not response.has_redirect_location:
        return
    target = response.request.url.join(response.headers["Location"])
    if host_is_private_or_local(target.host):
        logger.warning("job_scraper_private_redirect url=%s target=%s", response.request.url, target)
        raise ValueError("Job offer URL redirects to a private or local address.")


def scrape_job_offer(raw_url: str) -> str:
    """Fetch job-offer text. Network trouble yields "" since the offer is optional context."""
    url, hostname = normalize_job_url(raw_url)
    if host_is_private_or_local(hostname):
        raise ValueError("Private or local URLs are not allowed for job offers.")

    with httpx.Client(
        timeout=settings.scraper_timeout_s,
        follow_redirects=True,
        headers=_BROWSER_HEADERS,
        event_hooks={"response": [_refuse_private_redirect]},
    ) as client:
        if settings.jina_reader_enabled:
            try:
                text = _fetch_via_reader(client, url)
                if len(text) >= MIN_USEFUL_CHARS:
                    return text
            except httpx.HTTPError as exc:
                logger.warning("job_scraper_reader_failed url=%s: %s", url, exc)
        try:
            return _fetch_direct(client, url)
        except httpx.HTTPError as exc:
            logger.warning("job_scraper_failed url=%s: %s", url, exc)
            return ""
