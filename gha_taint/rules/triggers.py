"""
Trigger classification: which privileges a workflow run executes with.

'pull_request_target' and 'workflow_run' run with the base repository's
secrets and a write token while their event payload comes from whoever
opened the pull request. 'pull_request' from a fork gets neither by default.
Everything else (push, schedule, workflow_dispatch, ...) is driven by
people who already have write access.
"""

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from gha_taint.parser.workflow_parser import WorkflowDocument, Job, Step
from gha_taint.rules.contexts import strip_literals

logger = logging.getLogger(__name__)


class TrustContext(Enum):
    BASELINE = 0
    SANDBOXED = 1
    ELEVATED = 2


ELEVATED_TRIGGERS = frozenset({"pull_request_target", "workflow_run"})
SANDBOXED_TRIGGERS = frozenset({"pull_request"})

# github.event_name == 'push'  /  'push' != github.event_name
_EVENT_NAME_COMPARISON = re.compile(
    r"github\.event_name\s*(==|!=)\s*'([^']*)'"
    r"|'([^']*)'\s*(==|!=)\s*github\.event_name",
    re.IGNORECASE,
)

# logical not, as opposed to the "!=" operator
_NEGATION = re.compile(r"!(?!=)")


def classify_triggers(kinds: Iterable[str]) -> TrustContext:
    """The most elevated context among the given trigger kinds."""
    kinds = set(kinds)
    if kinds & ELEVATED_TRIGGERS:
        return TrustContext.ELEVATED
    if kinds & SANDBOXED_TRIGGERS:
        return TrustContext.SANDBOXED
    return TrustContext.BASELINE


def classify(doc: WorkflowDocument) -> TrustContext:
    return classify_triggers(doc.trigger_kinds)


def is_protected(job: Job) -> bool:
    """A job bound to a deployment environment waits for its protection rules
    (e.g. required reviewers) before it gets the environment's secrets."""
    return bool(job.environment)


def narrow_by_condition(condition: Optional[str], kinds: Iterable[str]) -> set[str]:
    """
    Trigger kinds that can still reach code guarded by an 'if:' condition.

    Only comparisons against github.event_name narrow anything. The condition
    is split on '||'; a disjunct with '==' comparisons allows only those
    events, '!=' comparisons remove events, and a disjunct with neither
    allows every kind. A disjunct containing a logical not ('!(...)',
    '!contains(...)') is not narrowed at all.
    """
    kinds = set(kinds)
    if not condition:
        return kinds

    allowed: set[str] = set()
    for disjunct in condition.split("||"):
        if _NEGATION.search(strip_literals(disjunct)):
            allowed |= kinds
            continue
        equal, not_equal = set(), set()
        for match in _EVENT_NAME_COMPARISON.finditer(disjunct):
            if match.group(1):
                operator, name = match.group(1), match.group(2)
            else:
                operator, name = match.group(4), match.group(3)
            (equal if operator == "==" else not_equal).add(name.lower())
        reachable = {k for k in kinds if k.lower() in equal} if equal else set(kinds)
        allowed |= {k for k in reachable if k.lower() not in not_equal}
    return allowed


def job_triggers(doc: WorkflowDocument, job: Job) -> set[str]:
    return narrow_by_condition(job.if_condition, doc.trigger_kinds)


def classify_job(doc: WorkflowDocument, job: Job) -> TrustContext:
    """Trust context of one job, honoring an event-name guard in its 'if:'."""
    context = classify_triggers(job_triggers(doc, job))
    logger.debug("Job '%s' in %s runs as %s", job.job_id, doc.file_path, context.name)
    return context


def classify_step(doc: WorkflowDocument, job: Job, step: Step) -> TrustContext:
    """Trust context of one step, honoring job- and step-level event-name guards."""
    return classify_triggers(narrow_by_condition(step.if_condition, job_triggers(doc, job)))
