from __future__ import annotations

import re

from bs4 import BeautifulSoup

from sutprobe.errors import LinkNotFoundError

URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+", flags=re.IGNORECASE)

CONFIRM_EMAIL_URL = r"https?://.*/-/login-password-confirm-email"
CONFIRM_ANOTHER_EMAIL_URL = r"https?://[^\"']*/-/confirm-email-address"
ACCEPT_INVITE_URL = r"https?://[^\"']*/-/accept-invite"
RESET_PASSWORD_URL = r"https?://[^\"']*/-/reset-password"
LOGIN_WITH_SECRET_URL = r"https?://[^\"']+/-/v0/login-with-secret"
UNSUBSCRIBE_URL = r"https?://[^\"']*/-/unsubscribe"


def _candidate_links(html: str) -> list[str]:
    links: list[str] = []
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all("a"):
        href = tag.get("href")
        if href and href.startswith("http"):
            links.append(href.strip())
    links.extend(URL_PATTERN.findall(html))

    deduped = []
    seen = set()
    for link in links:
        if link and link not in seen:
            seen.add(link)
            deduped.append(link)
    return deduped


def find_any_first_link_to_url_in(url_regex: str, html: str | None) -> str | None:
    if not html:
        return None
    pattern = re.compile(url_regex)
    for link in _candidate_links(html):
        if pattern.match(link):
            return link
    return None


def find_first_link_to_url_in(url_regex: str, html: str | None, address: str | None = None) -> str:
    link = find_any_first_link_to_url_in(url_regex, html)
    if link is None:
        raise LinkNotFoundError(url_regex, address)
    return link
