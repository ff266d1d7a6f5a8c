from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class EmailRecord:
    subject: str
    body_html_text: str
    sent_to: str
    index: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any], address: str, index: int) -> EmailRecord:
        return cls(
            subject=data.get("subject") or "",
            body_html_text=data.get("bodyHtmlText") or "",
            sent_to=data.get("sentTo") or address,
            index=index,
        )


@dataclass(frozen=True, slots=True)
class MatchResult:
    email: EmailRecord
    matching_strings: list[str] = field(default_factory=list)
    single_pattern: bool = False

    @property
    def matching_string(self) -> str | None:
        """Set only when the caller passed one pattern as a plain string."""
        if not self.single_pattern or not self.matching_strings:
            return None
        return self.matching_strings[0]


@dataclass(frozen=True, slots=True)
class EmailsSentSummary:
    num: int
    addrs_by_time_asc: list[str] = field(default_factory=list)
