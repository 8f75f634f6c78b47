"""
JSON reporter: outputs findings as structured JSON for programmatic use.
"""

import json
import logging
from typing import Any

from gha_taint.rules.engine import Finding, ScriptInjection, SecretInPullRequest, UntrustedCheckout

logger = logging.getLogger(__name__)

SECTIONS = (
    ("script_injections", ScriptInjection),
    ("untrusted_checkouts", UntrustedCheckout),
    ("secret_in_pull_requests", SecretInPullRequest),
)


def finding_to_dict(finding: Finding) -> dict[str, Any]:
    return {
        "rule_id": finding.rule_id,
        "severity": finding.severity.value,
        "title": finding.title,
        "description": finding.description,
        "file_path": finding.file_path,
        "job_id": finding.job_id,
        "step_index": finding.step_index,
        "step_name": finding.step_name,
        "expression": finding.expression,
        "line_number": finding.line_number,
    }


def report_json(findings: list[Finding]) -> str:
    """
    Format findings as a JSON string, one list per finding kind.

    Args:
        findings: List of Finding objects to report.

    Returns:
        A JSON string with all findings.
    """
    data: dict[str, Any] = {"total": len(findings)}
    for key, kind in SECTIONS:
        data[key] = [finding_to_dict(f) for f in findings if isinstance(f, kind)]
    output = json.dumps(data, indent=2)
    logger.info("JSON report: %d finding(s), %d bytes", len(findings), len(output))
    return output
