"""Tests for the reporters."""

import json
import pytest

from gha_taint.reporter import report_console, report_json
from gha_taint.reporter.json_reporter import finding_to_dict
from gha_taint.rules import ScriptInjection, SecretInPullRequest, UntrustedCheckout


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_injection(**overrides):
    defaults = dict(
        file_path=".github/workflows/triage.yml",
        job_id="triage",
        step_index=0,
        step_name="Log title",
        expression="github.event.issue.title",
        line_number=12,
        context="github.event.issue.title",
    )
    defaults.update(overrides)
    return ScriptInjection(**defaults)


def _make_secret(**overrides):
    defaults = dict(
        file_path=".github/workflows/notify.yml",
        job_id="notify",
        step_index=None,
        step_name="",
        expression="SLACK_TOKEN",
        scope="job env",
    )
    defaults.update(overrides)
    return SecretInPullRequest(**defaults)


@pytest.fixture
def dangerous_findings(fixture_findings):
    """Findings from a workflow with every kind of problem (8 total)."""
    return fixture_findings("untrusted-script-injection.yml") + fixture_findings("secret-all-checkout.yml")


# ---------------------------------------------------------------------------
# Console reporter
# ---------------------------------------------------------------------------

class TestConsoleReporter:
    def test_includes_finding_titles(self, dangerous_findings):
        output = report_console(dangerous_findings, file_path="/repo")
        assert ScriptInjection.title in output
        assert UntrustedCheckout.title in output
        assert SecretInPullRequest.title in output

    def test_includes_severity(self, dangerous_findings):
        output = report_console(dangerous_findings)
        assert "CRITICAL" in output
        assert "HIGH" in output

    def test_includes_counts_per_rule(self, dangerous_findings):
        output = report_console(dangerous_findings)
        assert "8" in output
        assert "script-injection × 1" in output
        assert "untrusted-checkout × 1" in output
        assert "secret-in-pull-request × 6" in output

    def test_location_and_step(self):
        output = report_console([_make_injection()])
        assert ".github/workflows/triage.yml:12" in output
        assert "job 'triage', step 'Log title'" in output

    def test_job_level_finding_has_no_step(self):
        output = report_console([_make_secret()])
        assert "job 'notify'" in output
        assert "step '" not in output

    def test_injection_details(self):
        output = report_console([_make_injection(sink="with.script")])
        assert "Context: github.event.issue.title" in output
        assert "Sink:    with.script" in output

    def test_checkout_details(self):
        finding = UntrustedCheckout(
            file_path=".github/workflows/preview.yml",
            job_id="preview",
            step_index=0,
            step_name="actions/checkout@v4",
            expression="${{ github.event.workflow_run.head_sha }}",
            executed_by="Build preview",
        )
        output = report_console([finding])
        assert "Ref:     ${{ github.event.workflow_run.head_sha }}" in output
        assert "Runs in: Build preview" in output

    def test_secret_details(self):
        output = report_console([_make_secret()])
        assert "Secret:  SLACK_TOKEN" in output
        assert "Scope:   job env" in output

    def test_sections_follow_finding_kind(self, dangerous_findings):
        output = report_console(dangerous_findings)
        assert output.index("Script injection (1)") < output.index("Untrusted checkout (1)")
        assert output.index("Untrusted checkout (1)") < output.index("Secrets in pull request workflows (6)")

    def test_empty_findings(self):
        output = report_console([], file_path="/repo")
        assert "No dangerous workflow patterns found" in output

    def test_includes_repository(self):
        output = report_console([], file_path="/path/to/repo")
        assert "Repository: /path/to/repo" in output

    def test_prints_report(self, capsys):
        output = report_console([_make_secret()])
        assert capsys.readouterr().out.strip() == output.strip()


# ---------------------------------------------------------------------------
# JSON reporter
# ---------------------------------------------------------------------------

class TestJsonReporter:
    def test_valid_json(self, dangerous_findings):
        parsed = json.loads(report_json(dangerous_findings))
        assert isinstance(parsed, dict)

    def test_sections(self, dangerous_findings):
        parsed = json.loads(report_json(dangerous_findings))
        assert parsed["total"] == 8
        assert len(parsed["script_injections"]) == 1
        assert len(parsed["untrusted_checkouts"]) == 1
        assert len(parsed["secret_in_pull_requests"]) == 6

    def test_finding_fields(self):
        parsed = json.loads(report_json([_make_injection()]))
        f = parsed["script_injections"][0]
        assert f["rule_id"] == "script-injection"
        assert f["severity"] == "critical"
        assert f["job_id"] == "triage"
        assert f["step_index"] == 0
        assert f["line_number"] == 12
        assert f["expression"] == "github.event.issue.title"

    def test_job_level_step_index_is_null(self):
        assert finding_to_dict(_make_secret())["step_index"] is None

    def test_empty_findings(self):
        parsed = json.loads(report_json([]))
        assert parsed == {
            "total": 0,
            "script_injections": [],
            "untrusted_checkouts": [],
            "secret_in_pull_requests": [],
        }
