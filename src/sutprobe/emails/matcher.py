from __future__ import annotations

import logging
import re
from typing import Any, Sequence
from urllib.parse import urlencode

from sutprobe.client import SessionClient
from sutprobe.errors import NoMatchingEmailError, PollTimeoutError, TooManyEmailsError
from sutprobe.polling import NO_MATCH, NoMatch, PollingWaiter

from . import links
from .models import EmailRecord, EmailsSentSummary, MatchResult

# The last-emails endpoint keeps a bounded window of recent emails per address.
MAX_RELIABLE_EMAIL_COUNT = 13


def _as_list(patterns: str | Sequence[str]) -> list[str]:
    if isinstance(patterns, str):
        return [patterns]
    return list(patterns)


def _describe_email(address: str):
    def describe(observation: Any) -> str:
        email = observation[0] if isinstance(observation, tuple) else observation
        if email is None:
            return f"No email sent to {address}"
        return f"Last email to {address} is still:\n{email.subject}\n{email.body_html_text}"

    return describe


class EmailMatcher:
    """Looks at the emails the server under test says it has sent.

    Only the most recent email to an address is ever inspected. If two emails are
    sent to the same address in quick succession, text in the first one can no
    longer be matched once the second has arrived.
    """

    def __init__(
        self,
        client: SessionClient,
        origin: str,
        waiter: PollingWaiter,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.client = client
        self.origin = origin.rstrip("/")
        self.waiter = waiter
        self.logger = logger or logging.getLogger(__name__)

    def _fetch_emails(self, site_id: int | str, address: str, **extra: Any) -> list[EmailRecord]:
        query = urlencode({"sentTo": address, "siteId": site_id, **extra})
        response = self.client.get(f"{self.origin}/-/last-e2e-test-email?{query}")
        items = response.json() or []
        return [EmailRecord.from_json(item, address, index) for index, item in enumerate(items)]

    def _fetch_last(self, site_id: int | str, address: str) -> EmailRecord | None:
        emails = self._fetch_emails(site_id, address)
        if not emails:
            return None
        self.logger.info("%s has gotten %s emails:", address, len(emails))
        for email in emails:
            marker = "  <- the last one, returning it" if email.index == len(emails) - 1 else ""
            self.logger.info('  subject: "%s"%s', email.subject, marker)
        return emails[-1]

    def get_last(self, site_id: int | str, address: str, wait: bool = False) -> EmailRecord | None:
        if not wait:
            return self._fetch_last(site_id, address)

        def predicate() -> EmailRecord | NoMatch:
            email = self._fetch_last(site_id, address)
            return NO_MATCH if email is None else email

        try:
            return self.waiter.wait(predicate, describe=_describe_email(address), what=f"an email to {address}")
        except PollTimeoutError as exc:
            raise NoMatchingEmailError(address, []) from exc

    def wait_until_matches(
        self,
        site_id: int | str,
        address: str,
        patterns: str | Sequence[str],
    ) -> MatchResult:
        texts = _as_list(patterns)
        regexes = [re.compile(re.escape(text)) for text in texts]

        def predicate() -> MatchResult | NoMatch:
            email = self._fetch_last(site_id, address)
            matching: list[str] = []
            misses: list[str] = []
            for text, regex in zip(texts, regexes):
                found = regex.search(email.body_html_text) if email else None
                if found:
                    matching.append(found.group(0))
                else:
                    misses.append(text)
            if email is None or misses:
                return NoMatch((email, misses))
            return MatchResult(
                email=email,
                matching_strings=matching,
                single_pattern=isinstance(patterns, str),
            )

        try:
            return self.waiter.wait(
                predicate,
                describe=_describe_email(address),
                what=f"an email to {address} matching {texts}",
            )
        except PollTimeoutError as exc:
            unmatched = texts
            if isinstance(exc.last_observation, tuple) and exc.last_observation[0] is not None:
                unmatched = exc.last_observation[1]
            raise NoMatchingEmailError(address, unmatched) from exc

    def last_email_matches(
        self,
        site_id: int | str,
        address: str,
        patterns: str | Sequence[str],
        wait: bool = False,
    ) -> str | None:
        """Returns the first of `patterns` found in the last email, or None."""
        email = self._require_last(site_id, address, wait)
        for text in _as_list(patterns):
            found = re.search(re.escape(text), email.body_html_text)
            if found:
                return found.group(0)
        return None

    def assert_last_email_matches(
        self,
        site_id: int | str,
        address: str,
        patterns: str | Sequence[str],
        wait: bool = False,
    ) -> str:
        email = self._require_last(site_id, address, wait)
        texts = _as_list(patterns)
        for text in texts:
            found = re.search(re.escape(text), email.body_html_text)
            if found:
                return found.group(0)
        raise NoMatchingEmailError(
            address,
            texts,
            detail=(
                f"Email text didn't match any of {texts},\n"
                f"email sent to: {address},\n"
                f"email title: {email.subject},\n"
                f"email text: {email.body_html_text}"
            ),
        )

    def count_sent_to(self, site_id: int | str, address: str) -> int:
        emails = self._fetch_emails(site_id, address, timeoutMs=1000)
        if len(emails) > MAX_RELIABLE_EMAIL_COUNT:
            raise TooManyEmailsError(address, len(emails))
        return len(emails)

    def get_emails_sent_to_addrs(self, site_id: int | str) -> EmailsSentSummary:
        response = self.client.get(f"{self.origin}/-/num-e2e-test-emails-sent?siteId={site_id}")
        data = response.json()
        return EmailsSentSummary(
            num=int(data.get("num", 0)),
            addrs_by_time_asc=list(data.get("addrsByTimeAsc") or []),
        )

    def _require_last(self, site_id: int | str, address: str, wait: bool) -> EmailRecord:
        email = self.get_last(site_id, address, wait=wait)
        if email is None:
            hint = "" if wait else " Pass wait=True to poll for one."
            raise NoMatchingEmailError(
                address, [], detail=f"No email has yet been sent to {address}.{hint}"
            )
        return email

    def _wait_for_link(
        self,
        site_id: int | str,
        address: str,
        text_to_match: str | Sequence[str],
        url_regex: str,
    ) -> str:
        result = self.wait_until_matches(site_id, address, text_to_match)
        return links.find_first_link_to_url_in(url_regex, result.email.body_html_text, address)

    def get_verify_email_address_link(self, site_id: int | str, address: str, wait: bool = False) -> str:
        email = self._require_last(site_id, address, wait)
        return links.find_first_link_to_url_in(links.CONFIRM_EMAIL_URL, email.body_html_text, address)

    def wait_for_verify_another_email_address_link(
        self,
        site_id: int | str,
        address: str,
        is_old_addr: bool = False,
    ) -> str:
        text = "To verify email" if is_old_addr else "To finish adding"
        return self._wait_for_link(site_id, address, [text, address], links.CONFIRM_ANOTHER_EMAIL_URL)

    def wait_for_invite_link(self, site_id: int | str, address: str) -> str:
        return self._wait_for_link(site_id, address, "invites you to join", links.ACCEPT_INVITE_URL)

    def wait_for_thanks_for_accepting_invite_reset_password_link(self, site_id: int | str, address: str) -> str:
        return self._wait_for_link(
            site_id, address, "thanks for accepting the invitation", links.RESET_PASSWORD_URL
        )

    def wait_for_already_have_account_reset_password_link(self, site_id: int | str, address: str) -> str:
        return self._wait_for_link(
            site_id, address, "you already have such an account", links.RESET_PASSWORD_URL
        )

    def wait_for_reset_password_link(self, site_id: int | str, address: str) -> str:
        return self._wait_for_link(site_id, address, "reset-password", links.RESET_PASSWORD_URL)

    def wait_for_one_time_login_link(self, site_id: int | str, address: str) -> str:
        return self._wait_for_link(site_id, address, "login-with-secret", links.LOGIN_WITH_SECRET_URL)

    def get_last_unsubscription_link(self, site_id: int | str, address: str, wait: bool = False) -> str:
        email = self._require_last(site_id, address, wait)
        return links.find_first_link_to_url_in(links.UNSUBSCRIBE_URL, email.body_html_text, address)

    def get_any_unsubscription_link(self, site_id: int | str, address: str, wait: bool = False) -> str | None:
        email = self._require_last(site_id, address, wait)
        return links.find_any_first_link_to_url_in(links.UNSUBSCRIBE_URL, email.body_html_text)

    def wait_for_unsubscription_link(self, site_id: int | str, address: str) -> str:
        def predicate() -> str | NoMatch:
            email = self._fetch_last(site_id, address)
            link = links.find_any_first_link_to_url_in(links.UNSUBSCRIBE_URL, email.body_html_text) if email else None
            return NoMatch(email) if link is None else link

        try:
            return self.waiter.wait(
                predicate,
                describe=_describe_email(address),
                what=f"an unsubscription link emailed to {address}",
            )
        except PollTimeoutError as exc:
            raise NoMatchingEmailError(address, [links.UNSUBSCRIBE_URL]) from exc
