"""Pull-request reference extraction (core domain)."""

from __future__ import annotations

import re
from typing import List
from urllib.parse import urlsplit

from core.models import PullRequestReference

CODE_HOST_DOMAIN = "github.com"

PR_URL_PATTERN = re.compile(
    r"https?://(?i:github\.com)/(?P<owner>[^\s/]+)/(?P<repo>[^\s/]+)/pull/(?P<number>[0-9]+)"
)
# Bare references: #123, PR-456, PR 789, pr123
PR_NUMBER_PATTERN = re.compile(r"(?:#|\bPR-?\s*)(?P<number>[0-9]+)", re.IGNORECASE)


def is_code_host_url(url: str) -> bool:
    """Return True for https URLs on the code-host domain."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    if parsed.scheme != "https":
        return False
    return parsed.netloc.lower() == CODE_HOST_DOMAIN


def extract_references(text: str) -> List[PullRequestReference]:
    """Return pull-request references found in ``text``.

    URL references come first in text order, followed by bare references in
    text order. A bare reference is dropped when it lies inside a URL
    candidate or when a reference with the same number was already
    collected. Malformed candidates are skipped.
    """

    references: List[PullRequestReference] = []
    if not text:
        return references

    url_spans = []
    for match in PR_URL_PATTERN.finditer(text):
        url_spans.append(match.span())
        url = match.group(0)
        number = int(match.group("number"))
        if number <= 0 or not is_code_host_url(url):
            continue
        references.append(
            PullRequestReference(
                number=number,
                owner=match.group("owner"),
                repository=match.group("repo"),
                source_url=url,
            )
        )

    seen = {ref.number for ref in references}
    for match in PR_NUMBER_PATTERN.finditer(text):
        # Digits inside a URL path (e.g. a repo named pr-9-tool) are not references.
        if any(start <= match.start() < end for start, end in url_spans):
            continue
        number = int(match.group("number"))
        if number <= 0 or number in seen:
            continue
        seen.add(number)
        # Owner and repository are filled from configured defaults later.
        references.append(PullRequestReference(number=number))

    return references
