"""
Rule: Detect secrets reachable from pull request triggered jobs.

Under 'pull_request_target' and 'workflow_run' a job gets real secrets
while the pull request author controls the event payload and possibly
the code. Every secret such a job touches is at risk unless the job is
bound to a deployment environment, whose protection rules hold the run
until someone approves it.
"""

import logging
import re
from typing import Iterable, Optional

from gha_taint.parser.workflow_parser import WorkflowDocument, Job, Step, StepKind
from gha_taint.rules.contexts import find_expressions, strip_literals
from gha_taint.rules.engine import register_rule, SecretInPullRequest
from gha_taint.rules.triggers import TrustContext, classify_job, classify_step, is_protected
from gha_taint.rules.untrusted_checkout import runs_untrusted_code

logger = logging.getLogger(__name__)

# secrets.NAME or the whole secrets object; ['NAME'] lookups are rewritten first
SECRET_REF_PATTERN = re.compile(r"(?<![\w.\-])secrets\b(?:\s*\.\s*([\w\-]+))?", re.IGNORECASE)

BLANKET_SECRETS = "secrets"


def secret_names(text: Optional[str]) -> list[str]:
    """Secret names referenced inside ${{ }} expressions, in order of appearance.

    A reference to the secrets object itself (``toJSON(secrets)``) is
    reported as ``"secrets"``.
    """
    names = []
    for expression in find_expressions(text):
        for match in SECRET_REF_PATTERN.finditer(strip_literals(expression)):
            names.append(match.group(1) or BLANKET_SECRETS)
    return names


def _step_sources(step: Step) -> list[tuple[str, str]]:
    sources = [("env", value) for value in step.env.values()]
    if step.kind is StepKind.RUN:
        sources.append(("run", step.run or ""))
    else:
        sources.extend((f"with.{name}", value) for name, value in step.with_args.items())
    return sources


def _job_sources(job: Job) -> list[tuple[str, str]]:
    sources = [("job env", value) for value in job.env.values()]
    sources.extend((f"job with.{name}", value) for name, value in job.with_args.items())
    sources.extend(("job secrets", value) for value in job.secrets.values())
    if job.inherits_secrets:
        sources.append(("job secrets", "${{ secrets }}"))
    return sources


def _scan_scope(
    doc: WorkflowDocument,
    job: Job,
    step: Optional[Step],
    sources: Iterable[tuple[str, str]],
) -> list[SecretInPullRequest]:
    """One finding per distinct secret name within one scope."""
    findings = []
    seen: set[str] = set()
    for scope, text in sources:
        for name in secret_names(text):
            if name in seen:
                continue
            seen.add(name)
            findings.append(SecretInPullRequest(
                file_path=doc.file_path,
                job_id=job.job_id,
                step_index=step.index if step else None,
                step_name=step.label if step else "",
                expression=name,
                line_number=step.line_number if step else job.line_number,
                scope=scope,
            ))
    return findings


@register_rule
def check_secret_exposure(doc: WorkflowDocument) -> list[SecretInPullRequest]:
    findings = []
    for job in doc.jobs:
        if classify_job(doc, job) is not TrustContext.ELEVATED:
            continue
        if is_protected(job):
            logger.debug(
                "Job '%s' is protected by environment '%s', skipping secrets",
                job.job_id, job.environment,
            )
            continue

        # workflow-level env is only at risk in jobs that run the author's code
        if doc.env and runs_untrusted_code(doc, job):
            findings.extend(_scan_scope(
                doc, job, None, [("workflow env", v) for v in doc.env.values()],
            ))

        findings.extend(_scan_scope(doc, job, None, _job_sources(job)))

        for step in job.steps:
            if classify_step(doc, job, step) is not TrustContext.ELEVATED:
                logger.debug("Step '%s' is guarded away from elevated triggers", step.label)
                continue
            findings.extend(_scan_scope(doc, job, step, _step_sources(step)))
    return findings
