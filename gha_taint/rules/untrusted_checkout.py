"""
Rule: Detect untrusted code checked out and executed with elevated privileges.

'pull_request_target' and 'workflow_run' run with the base repository's
secrets and write token. Checking out the pull request's head (or the head
of the triggering run) and then building, testing or otherwise running it
hands those privileges to the pull request author.
"""

import logging
from typing import Optional

from gha_taint.parser.workflow_parser import WorkflowDocument, Job, Step, StepKind
from gha_taint.rules.contexts import (
    context_references,
    find_expressions,
    is_untrusted,
    normalize_context_path,
)
from gha_taint.rules.engine import register_rule, UntrustedCheckout
from gha_taint.rules.triggers import TrustContext, classify_job, classify_step

logger = logging.getLogger(__name__)

# Context prefixes that name code chosen by the pull request author
ATTACKER_REF_PREFIXES = (
    ("github", "event", "pull_request"),
    ("github", "event", "workflow_run"),
    ("github", "event", "number"),
    ("github", "head_ref"),
)

# The base side of a pull request is the target repository's own branch
TRUSTED_REF_PREFIXES = (
    ("github", "event", "pull_request", "base"),
)


def _is_attacker_ref(path: str) -> bool:
    segments = normalize_context_path(path)
    if any(segments[:len(p)] == p for p in TRUSTED_REF_PREFIXES):
        return False
    if any(segments[:len(p)] == p for p in ATTACKER_REF_PREFIXES):
        return True
    return is_untrusted(path)


def is_untrusted_ref(ref: Optional[str]) -> bool:
    """True if a checkout 'ref' input interpolates attacker-chosen code.

    A missing ref, a literal branch or tag, and refs such as github.sha
    that name the base repository's own commit are all safe.
    """
    for expression in find_expressions(ref):
        if any(_is_attacker_ref(path) for path in context_references(expression)):
            return True
    return False


def _executes_code(step: Step) -> bool:
    if step.kind is StepKind.RUN:
        return True
    return not step.is_checkout


def untrusted_checkouts(doc: WorkflowDocument, job: Job) -> list[tuple[Step, Step]]:
    """(checkout step, first later step executing code) pairs in an elevated job."""
    pairs = []
    for position, step in enumerate(job.steps):
        if not step.is_checkout or not is_untrusted_ref(step.checkout_ref):
            continue
        if classify_step(doc, job, step) is not TrustContext.ELEVATED:
            logger.debug("Checkout in '%s' is guarded away from elevated triggers", job.job_id)
            continue
        executor = next((s for s in job.steps[position + 1:] if _executes_code(s)), None)
        if executor is None:
            logger.debug(
                "Untrusted checkout in '%s' is never executed", job.job_id,
            )
            continue
        pairs.append((step, executor))
    return pairs


def runs_untrusted_code(doc: WorkflowDocument, job: Job) -> bool:
    return classify_job(doc, job) is TrustContext.ELEVATED and bool(untrusted_checkouts(doc, job))


@register_rule
def check_untrusted_checkout(doc: WorkflowDocument) -> list[UntrustedCheckout]:
    findings = []
    for job in doc.jobs:
        if classify_job(doc, job) is not TrustContext.ELEVATED:
            continue
        for checkout, executor in untrusted_checkouts(doc, job):
            findings.append(UntrustedCheckout(
                file_path=doc.file_path,
                job_id=job.job_id,
                step_index=checkout.index,
                step_name=checkout.label,
                expression=checkout.checkout_ref or "",
                line_number=checkout.line_number,
                executed_by=executor.label,
            ))
    return findings
