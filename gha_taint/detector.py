"""
Dangerous workflow detector: runs every rule over every workflow file of a
repository and collects the findings into one result.
"""

import fnmatch
import logging
import posixpath
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

from gha_taint.clients import RepoClient
from gha_taint.config import Config
from gha_taint.exceptions import RepoAccessError
from gha_taint.parser.workflow_parser import YAML_EXTENSIONS, parse_workflow_content
from gha_taint.rules import (
    run_all_rules,
    Finding,
    ScriptInjection,
    SecretInPullRequest,
    UntrustedCheckout,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DangerousWorkflowResult:
    """Findings of one detection run, grouped by kind in file/job/step order."""
    script_injections: tuple[ScriptInjection, ...] = ()
    untrusted_checkouts: tuple[UntrustedCheckout, ...] = ()
    secret_in_pull_requests: tuple[SecretInPullRequest, ...] = ()
    files_scanned: tuple[str, ...] = ()

    @classmethod
    def from_findings(
        cls, findings: Iterable[Finding], files_scanned: Iterable[str] = (),
    ) -> "DangerousWorkflowResult":
        findings = list(findings)
        return cls(
            script_injections=tuple(f for f in findings if isinstance(f, ScriptInjection)),
            untrusted_checkouts=tuple(f for f in findings if isinstance(f, UntrustedCheckout)),
            secret_in_pull_requests=tuple(f for f in findings if isinstance(f, SecretInPullRequest)),
            files_scanned=tuple(files_scanned),
        )

    @property
    def findings(self) -> list[Finding]:
        return [*self.script_injections, *self.untrusted_checkouts, *self.secret_in_pull_requests]

    @property
    def total(self) -> int:
        return len(self.script_injections) + len(self.untrusted_checkouts) + len(self.secret_in_pull_requests)

    @property
    def is_clean(self) -> bool:
        return self.total == 0


def workflow_paths(paths: Iterable[str], config: Config) -> list[str]:
    """Workflow files among `paths`: YAML files directly inside the workflow dir."""
    workflow_dir = config.workflow_dir.strip("/")
    selected = []
    for path in paths:
        normalized = posixpath.normpath(path.replace("\\", "/"))
        if posixpath.dirname(normalized) != workflow_dir:
            continue
        if not normalized.lower().endswith(YAML_EXTENSIONS):
            continue
        if any(fnmatch.fnmatch(normalized, pattern) for pattern in config.exclude):
            logger.info("Excluded %s via config", normalized)
            continue
        selected.append(path)
    return sorted(selected)


def _analyze_file(client: RepoClient, path: str) -> list[Finding]:
    try:
        content = client.get_file_content(path)
    except OSError as e:
        raise RepoAccessError("reading file", path, e) from e

    doc = parse_workflow_content(path, content)
    if doc.is_empty:
        logger.info("No workflow found in %s", path)
        return []
    return run_all_rules(doc)


def dangerous_workflow(client: RepoClient, config: Optional[Config] = None) -> DangerousWorkflowResult:
    """
    Scan every workflow file of a repository for dangerous patterns.

    Args:
        client: Repository access (see gha_taint.clients.RepoClient).
        config: Scan settings; defaults to Config().

    Returns:
        A DangerousWorkflowResult. Files that are not valid workflows
        contribute nothing.

    Raises:
        RepoAccessError: If listing or reading repository files fails.
    """
    config = config or Config()
    t0 = time.monotonic()

    try:
        all_paths = client.list_files()
    except OSError as e:
        raise RepoAccessError("listing files", cause=e) from e

    paths = workflow_paths(all_paths, config)
    logger.info("Found %d workflow file(s) among %d file(s)", len(paths), len(all_paths))

    if config.max_workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            # map() yields in input order, so the result does not depend on timing
            per_file = list(pool.map(lambda p: _analyze_file(client, p), paths))
    else:
        per_file = [_analyze_file(client, p) for p in paths]

    findings = [f for file_findings in per_file for f in file_findings]
    if config.ignore_rules:
        before = len(findings)
        findings = [f for f in findings if f.rule_id not in config.ignore_rules]
        logger.info("Ignored %d finding(s) via config ignore_rules", before - len(findings))

    result = DangerousWorkflowResult.from_findings(findings, files_scanned=paths)
    logger.info(
        "Dangerous workflow scan: %d injection(s), %d checkout(s), %d secret(s) in %.1fms",
        len(result.script_injections), len(result.untrusted_checkouts),
        len(result.secret_in_pull_requests), (time.monotonic() - t0) * 1000,
    )
    return result
