"""Page-level accessibility checks against live URLs.

Fetches each page with httpx and inspects the served HTML with BeautifulSoup.
This covers what static source scanning cannot see: the rendered document's
language, title, images and form controls.
"""

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from .errors import ExternalToolError, retry_async
from .models import Finding
from .rules.accessibility import SEVERITY_LEVELS, WCAG_MAPPING
from .rules.common import truncate

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
USER_AGENT = "Mozilla/5.0 (compatible; ui-code-audit/0.1)"

_UNLABELLED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}


def _finding(url: str, type: str, message: str, code: Optional[str] = None,
             recommendation: Optional[str] = None) -> Finding:
    return Finding(
        type=type,
        severity=SEVERITY_LEVELS[type],
        message=message,
        url=url,
        code=truncate(code) if code else None,
        recommendation=recommendation,
        wcag=WCAG_MAPPING.get(type),
        source="custom",
    )


def _has_label(control, soup: BeautifulSoup) -> bool:
    if control.get("aria-label", "").strip() or control.get("aria-labelledby"):
        return True
    if control.get("title", "").strip():
        return True
    if control.find_parent("label") is not None:
        return True
    control_id = control.get("id")
    return bool(control_id and soup.find("label", attrs={"for": control_id}))


def check_html(url: str, html: str) -> list[Finding]:
    """Run page-level checks over a fetched document."""
    soup = BeautifulSoup(html, "lxml")
    findings: list[Finding] = []

    html_tag = soup.find("html")
    if html_tag is None or not html_tag.get("lang", "").strip():
        findings.append(_finding(
            url, "missing_lang",
            "Page is missing a lang attribute on <html>",
            recommendation='Declare the page language, e.g. <html lang="en">',
        ))

    title_tag = soup.find("title")
    if title_tag is None or not title_tag.get_text(strip=True):
        findings.append(_finding(
            url, "missing_title",
            "Page is missing a non-empty <title>",
            recommendation="Give every page a descriptive, unique title",
        ))

    for img in soup.find_all("img"):
        if img.has_attr("alt") or img.get("aria-label") or img.get("aria-labelledby"):
            continue
        if img.get("role") in ("presentation", "none"):
            continue
        src = img.get("src", "")
        findings.append(_finding(
            url, "missing_alt",
            f"Image missing alt attribute: {src}" if src else "Image missing alt attribute",
            code=str(img),
            recommendation="Add descriptive alt text, or alt=\"\" if the image is purely decorative",
        ))

    for control in soup.find_all(["input", "textarea", "select"]):
        if control.name == "input" and control.get("type", "text").lower() in _UNLABELLED_INPUT_TYPES:
            continue
        if _has_label(control, soup):
            continue
        name = control.get("name") or control.get("id") or ""
        findings.append(_finding(
            url, "missing_form_label",
            f"Form control missing label: <{control.name}> {name}".rstrip(),
            code=str(control),
            recommendation="Associate a <label> or add aria-label / aria-labelledby",
        ))

    return findings


async def fetch_html(url: str, client: httpx.AsyncClient) -> str:
    """Fetch a page body.

    Raises:
        ExternalToolError: On connection errors, timeouts or error statuses.
    """
    try:
        response = await client.get(url, timeout=REQUEST_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ExternalToolError(f"Could not fetch {url}: {e}") from e
    return response.text


async def check_urls(
    urls: list[str],
    client: Optional[httpx.AsyncClient] = None,
    attempts: int = 3,
    base_delay: float = 1.0,
) -> list[Finding]:
    """Check each URL in order. Pages that cannot be fetched are skipped."""
    if not urls:
        return []

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(headers={"User-Agent": USER_AGENT})

    findings: list[Finding] = []
    try:
        for url in urls:
            html = await retry_async(
                lambda: fetch_html(url, client),
                fallback=None,
                description=f"Fetching {url}",
                attempts=attempts,
                base_delay=base_delay,
            )
            if html is None:
                logger.warning(f"Skipping {url}: page could not be fetched")
                continue
            page_findings = check_html(url, html)
            logger.info(f"{url}: {len(page_findings)} page-level issues")
            findings.extend(page_findings)
    finally:
        if owns_client:
            await client.aclose()

    return findings
