"""Detect GitHub Actions workflows that let untrusted input run with elevated privileges."""

from gha_taint.detector import DangerousWorkflowResult, dangerous_workflow
from gha_taint.rules import Finding, ScriptInjection, SecretInPullRequest, UntrustedCheckout

__version__ = "0.1.0"

__all__ = [
    "dangerous_workflow",
    "DangerousWorkflowResult",
    "Finding",
    "ScriptInjection",
    "SecretInPullRequest",
    "UntrustedCheckout",
]
