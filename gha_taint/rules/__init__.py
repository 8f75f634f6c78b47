from .engine import (
    run_all_rules,
    Finding,
    ScriptInjection,
    SecretInPullRequest,
    Severity,
    UntrustedCheckout,
)

__all__ = [
    "run_all_rules",
    "Finding",
    "ScriptInjection",
    "SecretInPullRequest",
    "Severity",
    "UntrustedCheckout",
]

# Import all rule modules so they register themselves via @register_rule
from . import script_injection
from . import untrusted_checkout
from . import secret_exposure
