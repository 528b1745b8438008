"""Message pattern matching (core domain)."""

from __future__ import annotations

import re
from typing import Optional

from core.errors import InvalidPatternError
from core.models import InboundMessage, MatchResult
from core.references import extract_references

MATCH_ALL = ".*"


class PatternMatcher:
    """Compiled message pattern.

    The pattern identifies intent (for example an approval phrase); pull
    request references are extracted from the whole message, including text
    outside the matched span.
    """

    def __init__(self, pattern: str = "") -> None:
        self._raw = pattern or MATCH_ALL
        try:
            self._compiled = re.compile(self._raw)
        except re.error as exc:
            raise InvalidPatternError(f"invalid message pattern {self._raw!r}: {exc}") from exc

    @property
    def pattern(self) -> str:
        return self._raw

    def match(self, text: str, source: Optional[InboundMessage] = None) -> Optional[MatchResult]:
        """Return a MatchResult for ``text`` or None when the pattern does not match."""

        found = self._compiled.search(text)
        if found is None:
            return None

        return MatchResult(
            pattern=self._raw,
            matched_text=found.group(0),
            references=tuple(extract_references(text)),
            source_message=source,
        )
