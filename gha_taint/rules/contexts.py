"""
Trust table for GitHub expression contexts.

Maps dotted context paths such as ``github.event.issue.title`` to a trust
label. Free-text fields that whoever opened an issue, pushed a commit or
named a branch can set are untrusted; ids, SHAs and numbers are trusted.
Paths that appear in neither list are trusted (DEFAULT_TRUST), so a new
GitHub field never produces findings until it is classified here.

Wildcard segments (``*``) match exactly one path component, including
array indices: ``github.event.commits[3].message`` is looked up as
``github.event.commits.*.message``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class Trust(Enum):
    TRUSTED = "trusted"
    UNTRUSTED = "untrusted"


DEFAULT_TRUST = Trust.TRUSTED

WILDCARD = "*"

# Matches ${{ ... }} and captures the expression body
EXPRESSION_PATTERN = re.compile(r"\$\{\{(.*?)\}\}", re.DOTALL)

_QUOTED_KEY = re.compile(r"""\[\s*['"]([^'"\]]+)['"]\s*\]""")
_ANY_INDEX = re.compile(r"\[[^\]]*\]")
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_REFERENCE = re.compile(r"(?<![\w.\-])([A-Za-z_][\w\-]*(?:\s*\.\s*[\w\-*]+|\[[^\]]*\])+)")


@dataclass(frozen=True)
class ContextPattern:
    """One trust-table entry."""
    path: str
    trust: Trust

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.path.lower().split("."))

    @property
    def wildcards(self) -> int:
        return self.segments.count(WILDCARD)

    def matches(self, segments: tuple[str, ...]) -> bool:
        own = self.segments
        if len(own) != len(segments):
            return False
        return all(p == WILDCARD or p == s for p, s in zip(own, segments))


_UNTRUSTED_PATHS = [
    "github.head_ref",
    "github.event.issue.title",
    "github.event.issue.body",
    "github.event.issue.labels.*.name",
    "github.event.pull_request.title",
    "github.event.pull_request.body",
    "github.event.pull_request.labels.*.name",
    "github.event.pull_request.head.ref",
    "github.event.pull_request.head.label",
    "github.event.pull_request.head.repo.default_branch",
    "github.event.comment.body",
    "github.event.review.body",
    "github.event.review_comment.body",
    "github.event.discussion.title",
    "github.event.discussion.body",
    "github.event.label.name",
    "github.event.pages.*.page_name",
    "github.event.commits.*.message",
    "github.event.commits.*.author.name",
    "github.event.commits.*.author.email",
    "github.event.head_commit.message",
    "github.event.head_commit.author.name",
    "github.event.head_commit.author.email",
    "github.event.workflow_run.head_branch",
    "github.event.workflow_run.display_title",
    "github.event.workflow_run.head_commit.message",
    "github.event.workflow_run.head_commit.author.name",
    "github.event.workflow_run.head_commit.author.email",
    "github.event.workflow_run.pull_requests.*.head.ref",
]

_TRUSTED_PATHS = [
    "github.action",
    "github.event.action",
    "github.event_name",
    "github.repository",
    "github.ref",
    "github.sha",
    "github.run_id",
    "github.run_number",
    "github.event.number",
    "github.event.issue.number",
    "github.event.pull_request.id",
    "github.event.pull_request.number",
    "github.event.pull_request.head.sha",
    "github.event.commits.*.id",
    "github.event.head_commit.id",
    "github.event.workflow_run.id",
    "github.event.workflow_run.head_sha",
]


def build_table(entries: Iterable[ContextPattern]) -> tuple[ContextPattern, ...]:
    """Order entries most-specific first so literal paths win over wildcards."""
    return tuple(sorted(entries, key=lambda entry: entry.wildcards))


TRUST_TABLE: tuple[ContextPattern, ...] = build_table(
    [ContextPattern(p, Trust.UNTRUSTED) for p in _UNTRUSTED_PATHS]
    + [ContextPattern(p, Trust.TRUSTED) for p in _TRUSTED_PATHS]
)


def normalize_context_path(path: str) -> tuple[str, ...]:
    """Split a context path into lowercase segments, turning indices into wildcards.

    >>> normalize_context_path("github.event.commits[0].message")
    ('github', 'event', 'commits', '*', 'message')
    >>> normalize_context_path("github.event['issue'].title")
    ('github', 'event', 'issue', 'title')
    """
    path = _QUOTED_KEY.sub(r".\1", path.strip())
    path = _ANY_INDEX.sub(".*", path)
    return tuple(segment.strip().lower() for segment in path.split(".") if segment.strip())


def trust_of(path: str, table: tuple[ContextPattern, ...] = TRUST_TABLE) -> Trust:
    segments = normalize_context_path(path)
    for entry in table:
        if entry.matches(segments):
            return entry.trust
    return DEFAULT_TRUST


def is_untrusted(path: str, table: tuple[ContextPattern, ...] = TRUST_TABLE) -> bool:
    """True if the context path carries attacker-controlled text."""
    return trust_of(path, table) is Trust.UNTRUSTED


def find_expressions(text: Optional[str]) -> list[str]:
    """Bodies of every ${{ ... }} in text, stripped."""
    if not text:
        return []
    return [body.strip() for body in EXPRESSION_PATTERN.findall(text)]


def strip_literals(expression: str) -> str:
    """Rewrite ['key'] lookups as .key and blank out remaining string literals."""
    expression = _QUOTED_KEY.sub(r".\1", expression)
    return _STRING_LITERAL.sub("''", expression)


def context_references(expression: str) -> list[str]:
    """Context paths referenced by an expression body.

    Function names, operators and string literals are skipped:
    ``format('{0}', github.event.issue.title)`` yields
    ``["github.event.issue.title"]``.
    """
    expression = strip_literals(expression)
    return [re.sub(r"\s+", "", ref) for ref in _REFERENCE.findall(expression)]
