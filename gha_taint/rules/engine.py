"""
Rule engine: defines the Finding variants and runs all rules against a workflow.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Optional

from gha_taint.parser.workflow_parser import WorkflowDocument

logger = logging.getLogger(__name__)


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True)
class Finding:
    """A single dangerous pattern found in a workflow."""
    file_path: str
    job_id: str
    step_index: Optional[int]   # None for job- and workflow-level env
    step_name: str
    expression: str             # offending expression, ref or secret name
    line_number: Optional[int] = None

    rule_id: ClassVar[str] = ""
    severity: ClassVar[Severity] = Severity.LOW
    title: ClassVar[str] = ""

    @property
    def description(self) -> str:
        return self.title


@dataclass(frozen=True)
class ScriptInjection(Finding):
    context: str = ""           # the untrusted context path
    sink: str = "run"           # "run" or "with.<input>"

    rule_id: ClassVar[str] = "script-injection"
    severity: ClassVar[Severity] = Severity.CRITICAL
    title: ClassVar[str] = "Untrusted input interpolated into a script"

    @property
    def description(self) -> str:
        return (
            f"The expression '${{{{ {self.expression} }}}}' in '{self.sink}' expands "
            f"the attacker-controlled context '{self.context}' before the step runs. "
            f"A crafted value can execute arbitrary commands. Pass it through an "
            f"environment variable instead:\n"
            f"  env:\n"
            f"    UNTRUSTED_VALUE: ${{{{ {self.expression} }}}}\n"
            f"  run: echo \"$UNTRUSTED_VALUE\""
        )


@dataclass(frozen=True)
class UntrustedCheckout(Finding):
    executed_by: str = ""       # first step that runs the checked-out code

    rule_id: ClassVar[str] = "untrusted-checkout"
    severity: ClassVar[Severity] = Severity.CRITICAL
    title: ClassVar[str] = "Untrusted code checked out with elevated privileges"

    @property
    def description(self) -> str:
        return (
            f"The job checks out '{self.expression}', which comes from the triggering "
            f"pull request or workflow run, and then executes it in '{self.executed_by}'. "
            f"This trigger runs with the base repository's secrets and write token, so "
            f"the pull request author controls code that runs with those privileges. "
            f"Use 'pull_request' for building untrusted code, or only check out the "
            f"default ref here."
        )


@dataclass(frozen=True)
class SecretInPullRequest(Finding):
    scope: str = ""             # "workflow env", "job env", "env", "run", "with.<input>", ...

    rule_id: ClassVar[str] = "secret-in-pull-request"
    severity: ClassVar[Severity] = Severity.HIGH
    title: ClassVar[str] = "Secret reachable from a pull request"

    @property
    def description(self) -> str:
        what = "all repository secrets" if self.expression == "secrets" else f"secrets.{self.expression}"
        return (
            f"The job exposes {what} (in {self.scope}) under a trigger that runs on "
            f"behalf of pull request authors. Bind the job to a protected deployment "
            f"'environment:' or move the secret to a workflow that only runs on "
            f"trusted events."
        )


# Type alias: a rule is a function that takes a WorkflowDocument and returns findings
RuleFunc = Callable[[WorkflowDocument], list[Finding]]

# Registry of all rules
_rules: list[RuleFunc] = []


def register_rule(func: RuleFunc) -> RuleFunc:
    """Decorator to register a rule function."""
    _rules.append(func)
    logger.debug("Registered rule: %s", func.__name__)
    return func


def run_all_rules(doc: WorkflowDocument) -> list[Finding]:
    """Run every registered rule against a workflow and return all findings."""
    logger.info("Running %d rule(s) against %s", len(_rules), doc.file_path)
    t0 = time.monotonic()
    findings = []
    for rule in _rules:
        rule_t0 = time.monotonic()
        rule_findings = rule(doc)
        rule_ms = (time.monotonic() - rule_t0) * 1000
        findings.extend(rule_findings)
        logger.debug(
            "Rule '%s': %d finding(s) in %.1fms",
            rule.__name__, len(rule_findings), rule_ms,
        )
    total_ms = (time.monotonic() - t0) * 1000
    logger.info(
        "Completed: %d finding(s) for %s in %.1fms",
        len(findings), doc.file_path, total_ms,
    )
    return findings
