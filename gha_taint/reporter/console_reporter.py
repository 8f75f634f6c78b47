"""
Console reporter: prints findings to the terminal, one section per finding kind.
"""

from gha_taint.rules.engine import (
    Finding,
    ScriptInjection,
    SecretInPullRequest,
    Severity,
    UntrustedCheckout,
)


# ANSI color codes for terminal output
COLORS = {
    Severity.CRITICAL: "\033[91m",  # bright red
    Severity.HIGH:     "\033[31m",  # red
    Severity.MEDIUM:   "\033[33m",  # yellow
    Severity.LOW:      "\033[36m",  # cyan
}
BOLD = "\033[1m"
RESET = "\033[0m"
RULE_WIDTH = 60

SECTIONS = (
    ("Script injection", ScriptInjection),
    ("Untrusted checkout", UntrustedCheckout),
    ("Secrets in pull request workflows", SecretInPullRequest),
)


def _badge(severity: Severity) -> str:
    return f"{COLORS.get(severity, '')}{BOLD}{severity.value.upper():>8}{RESET}"


def _where(f: Finding) -> str:
    where = f.file_path if not f.line_number else f"{f.file_path}:{f.line_number}"
    where += f"  job '{f.job_id}'"
    if f.step_name:
        where += f", step '{f.step_name}'"
    return where


def _details(f: Finding) -> list[str]:
    """The fields that identify what each kind of finding points at."""
    if isinstance(f, ScriptInjection):
        return [f"Context: {f.context}", f"Sink:    {f.sink}"]
    if isinstance(f, UntrustedCheckout):
        return [f"Ref:     {f.expression}", f"Runs in: {f.executed_by}"]
    if isinstance(f, SecretInPullRequest):
        return [f"Secret:  {f.expression}", f"Scope:   {f.scope}"]
    return [f"Match:   {f.expression}"]


def report_console(findings: list[Finding], file_path: str = "") -> str:
    """
    Format findings as a colored console report.

    Args:
        findings: List of Finding objects to report.
        file_path: Optional label (the scanned repository) for the header.

    Returns:
        The formatted report string (also prints it).
    """
    lines = ["", f"{BOLD}Dangerous Workflow Report{RESET}"]
    if file_path:
        lines.append(f"Repository: {file_path}")
    lines.append("=" * RULE_WIDTH)

    if not findings:
        lines.append("✅ No dangerous workflow patterns found!")
    else:
        summary = ", ".join(
            f"{rule_id} × {sum(1 for f in findings if f.rule_id == rule_id)}"
            for rule_id in dict.fromkeys(f.rule_id for f in findings)
        )
        lines.append(f"Found {BOLD}{len(findings)}{RESET} issue(s): {summary}")

        for heading, kind in SECTIONS:
            section = [f for f in findings if isinstance(f, kind)]
            if not section:
                continue
            lines.extend(["", f"{BOLD}{heading} ({len(section)}){RESET}", "-" * RULE_WIDTH])
            for f in section:
                lines.append(f"{_badge(f.severity)}  {f.title}")
                lines.append(f"          {_where(f)}")
                lines.extend(f"          {detail}" for detail in _details(f))
                lines.extend(f"          {text}" for text in f.description.split("\n"))
                lines.append("")

    lines.append("=" * RULE_WIDTH)
    report = "\n".join(lines)
    print(report)
    return report
