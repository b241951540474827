"""Website liveness probing and public contact extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from leadgen.core.errors import ProviderError
from leadgen.core.http import send
from leadgen.core.retry import retry_with_backoff
from leadgen.models import WebsiteStatus

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
PROBE_TIMEOUT = 10.0
PAGE_TIMEOUT = 15.0
CONTACT_FORM_TIMEOUT = 10.0

CONTACT_KEYWORDS = ("contact", "get-in-touch", "reach-out", "inquiry")
FREE_MAIL_DOMAINS = {"gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "aol.com"}
IGNORED_EMAIL_MARKERS = ("noreply", "no-reply", "example")
PREFERRED_EMAIL_PREFIXES = ("info", "contact", "hello", "support")
# Image names like logo@2x.png look like addresses.
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

EMAIL_REGEX = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)


@dataclass
class WebsiteReport:
    status: WebsiteStatus
    checked_at: Optional[datetime] = None
    final_url: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    contact_form_url: Optional[str] = None
    contact_form_working: Optional[bool] = None
    contact_form_checked_at: Optional[datetime] = None


def sanitize_website(raw_url: Optional[str]) -> Optional[str]:
    """Normalise raw website strings into absolute https URLs."""

    if not raw_url:
        return None

    url = raw_url.strip()
    if not url:
        return None

    parsed = urlparse(url, scheme="https")
    if not parsed.netloc:
        parsed = urlparse(f"https://{url}")

    if not parsed.netloc:
        return None

    normalized_path = parsed.path or "/"
    if not normalized_path.startswith("/"):
        normalized_path = f"/{normalized_path}"

    normalized = parsed._replace(path=normalized_path, fragment="")
    return urlunparse(normalized)


def extract_domain(raw_url: Optional[str]) -> Optional[str]:
    url = sanitize_website(raw_url)
    if not url:
        return None
    host = urlparse(url).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host or None


def extract_emails(text: str) -> List[str]:
    """Return unique business emails in a text blob, preferred prefixes first."""

    found: List[str] = []
    for match in EMAIL_REGEX.finditer(text or ""):
        email = match.group(0).lower().strip(".")
        domain = email.rsplit("@", 1)[-1]
        if domain in FREE_MAIL_DOMAINS:
            continue
        if any(marker in email for marker in IGNORED_EMAIL_MARKERS):
            continue
        if email.endswith(ASSET_SUFFIXES):
            continue
        if email not in found:
            found.append(email)

    preferred = [email for email in found if email.split("@", 1)[0].startswith(PREFERRED_EMAIL_PREFIXES)]
    others = [email for email in found if email not in preferred]
    return preferred + others


def find_contact_form(page_url: str, html: str) -> Optional[str]:
    """Locate a contact page link or contact form action in a page."""

    soup = BeautifulSoup(html or "", "html.parser")

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href.lower().startswith(("mailto:", "tel:", "javascript:")):
            continue
        if any(keyword in href.lower() for keyword in CONTACT_KEYWORDS):
            return urljoin(page_url, href)

    for form in soup.find_all("form"):
        action = (form.get("action") or "").strip()
        if action and any(keyword in action.lower() for keyword in CONTACT_KEYWORDS):
            return urljoin(page_url, action)

    return None


def _same_page(requested: str, final: str) -> bool:
    return requested.rstrip("/") == final.rstrip("/")


class SiteProber:
    """Classify a website's status and pull contact channels from its home page."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._client = client
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._now = now

    async def _request(self, method: str, url: str, timeout: float) -> httpx.Response:
        return await retry_with_backoff(
            lambda: send(
                self._client,
                method,
                url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=timeout,
                raise_for_status=False,
            ),
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            label=f"{method} {url}",
        )

    async def check_status(self, website: Optional[str]) -> WebsiteReport:
        url = sanitize_website(website)
        if not url:
            return WebsiteReport(status=WebsiteStatus.NO_WEBSITE)

        checked_at = self._now()
        try:
            response = await self._request("HEAD", url, PROBE_TIMEOUT)
        except ProviderError as exc:
            logger.warning("Website probe failed for %s: %s", url, exc)
            return WebsiteReport(status=WebsiteStatus.BROKEN, checked_at=checked_at)

        final_url = str(response.url)
        if response.is_success:
            status = WebsiteStatus.ACTIVE if _same_page(url, final_url) else WebsiteStatus.REDIRECTED
        else:
            status = WebsiteStatus.INACTIVE
        return WebsiteReport(status=status, checked_at=checked_at, final_url=final_url)

    async def fetch_html(self, url: str) -> Optional[str]:
        try:
            response = await self._request("GET", url, PAGE_TIMEOUT)
        except ProviderError as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            return None
        if not response.is_success:
            return None
        content_type = response.headers.get("Content-Type", "").lower()
        if content_type and "html" not in content_type:
            logger.debug("Skipping non-HTML content at %s (content-type=%s)", url, content_type)
            return None
        return response.text

    async def check_contact_form(self, url: str) -> bool:
        try:
            response = await send(
                self._client,
                "HEAD",
                url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=CONTACT_FORM_TIMEOUT,
                raise_for_status=False,
            )
        except ProviderError as exc:
            logger.debug("Contact form probe failed for %s: %s", url, exc)
            return False
        return response.is_success

    async def analyze(self, website: Optional[str]) -> WebsiteReport:
        """Probe status, then scrape emails and a contact form from live sites."""
        report = await self.check_status(website)
        if report.status not in (WebsiteStatus.ACTIVE, WebsiteStatus.REDIRECTED):
            return report

        page_url = report.final_url or sanitize_website(website)
        html = await self.fetch_html(page_url)
        if not html:
            return report

        report.emails = extract_emails(html)
        report.contact_form_url = find_contact_form(page_url, html)
        if report.contact_form_url:
            report.contact_form_checked_at = self._now()
            report.contact_form_working = await self.check_contact_form(report.contact_form_url)
        return report
