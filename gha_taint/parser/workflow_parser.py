"""
Parser for GitHub Actions workflow files.

Turns the raw bytes of a .yml/.yaml file into a WorkflowDocument that the
detection rules can walk. Parsing is tolerant: anything that is not a
workflow (wrong extension, invalid YAML, not a mapping, no 'on'/'jobs')
becomes an empty document instead of an error, so one bad file never stops
a repository scan.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)

YAML_EXTENSIONS = (".yml", ".yaml")

_LINE_KEY = "__line__"


class _LineLoader(yaml.SafeLoader):
    """PyYAML loader that stores the start line number on every mapping node."""


def _construct_mapping(loader: _LineLoader, node: yaml.MappingNode) -> dict[Any, Any]:
    mapping: dict[Any, Any] = loader.construct_mapping(node, deep=True)
    mapping[_LINE_KEY] = node.start_mark.line + 1  # YAML lines are 0-indexed
    return mapping


_LineLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class ActionRef:
    """A reference to an action used in a step."""
    full_ref: str       # e.g. "actions/checkout@v4"
    owner: str          # e.g. "actions", empty for local and docker actions
    repo: str           # e.g. "checkout"
    ref: str            # e.g. "v4" or a SHA, empty when unversioned

    @property
    def is_checkout(self) -> bool:
        return self.owner.lower() == "actions" and self.repo.lower() == "checkout"


@dataclass(frozen=True)
class Trigger:
    """One entry of the workflow's 'on:' section."""
    kind: str                       # e.g. "pull_request_target"
    types: tuple[str, ...] = ()     # activity type filter, e.g. ("opened",)


class StepKind(Enum):
    RUN = "run"
    ACTION = "action"


@dataclass
class Step:
    """A single step within a job: either a shell script or an action call."""
    kind: StepKind
    index: int                      # position in the job's 'steps:' list
    name: Optional[str]
    run: Optional[str] = None
    uses: Optional[ActionRef] = None
    with_args: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    if_condition: Optional[str] = None
    line_number: Optional[int] = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.uses is not None:
            return self.uses.full_ref
        return f"step {self.index + 1}"

    @property
    def is_checkout(self) -> bool:
        return self.kind is StepKind.ACTION and self.uses is not None and self.uses.is_checkout

    @property
    def checkout_ref(self) -> Optional[str]:
        """The 'ref' input of a checkout step, None when the default ref is used."""
        if not self.is_checkout:
            return None
        return self.with_args.get("ref")


@dataclass
class Job:
    """A single job within a workflow."""
    job_id: str
    name: Optional[str]
    steps: list[Step]
    env: dict[str, str]
    environment: Optional[str] = None   # deployment environment name
    if_condition: Optional[str] = None
    uses: Optional[str] = None          # reusable workflow call
    with_args: dict[str, str] = field(default_factory=dict)
    secrets: dict[str, str] = field(default_factory=dict)
    inherits_secrets: bool = False
    line_number: Optional[int] = None


@dataclass
class WorkflowDocument:
    """A parsed GitHub Actions workflow."""
    file_path: str
    name: Optional[str] = None
    triggers: list[Trigger] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    jobs: list[Job] = field(default_factory=list)
    line_number: Optional[int] = None

    @classmethod
    def empty(cls, file_path: str) -> "WorkflowDocument":
        """The document for a file that holds nothing to analyze."""
        return cls(file_path=file_path)

    @property
    def is_empty(self) -> bool:
        return not self.triggers and not self.jobs

    @property
    def trigger_kinds(self) -> set[str]:
        return {t.kind for t in self.triggers}

    def effective_env(self, job: Job, step: Optional[Step] = None) -> dict[str, str]:
        """Merge workflow, job and step env; the innermost scope wins."""
        merged = dict(self.env)
        merged.update(job.env)
        if step is not None:
            merged.update(step.env)
        return merged


def _is_yaml_path(file_path: str) -> bool:
    return file_path.lower().endswith(YAML_EXTENSIONS)


def _string_map(value: Any) -> dict[str, str]:
    """Normalize an env/with mapping, dropping line markers and null values."""
    if not isinstance(value, dict):
        return {}
    result = {}
    for key, item in value.items():
        if key == _LINE_KEY or item is None:
            continue
        if isinstance(item, bool):
            item = "true" if item else "false"
        result[str(key)] = str(item)
    return result


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_action_ref(uses_string: str) -> ActionRef:
    """Parse an action reference like 'actions/checkout@v4' into components."""
    if uses_string.startswith("docker://") or uses_string.startswith("./"):
        logger.debug("Local/docker action: %s", uses_string)
        return ActionRef(full_ref=uses_string, owner="", repo="", ref="")

    action_path, ref = uses_string, ""
    if "@" in uses_string:
        action_path, ref = uses_string.rsplit("@", 1)

    parts = action_path.split("/")
    owner = parts[0] if len(parts) >= 2 else ""
    repo = parts[1] if len(parts) >= 2 else ""
    return ActionRef(full_ref=uses_string, owner=owner, repo=repo, ref=ref)


def _parse_step(index: int, step_raw: dict[str, Any]) -> Optional[Step]:
    """Parse a raw step dictionary, or None if it neither runs nor uses anything."""
    common = dict(
        index=index,
        name=_optional_text(step_raw.get("name")),
        env=_string_map(step_raw.get("env")),
        if_condition=_optional_text(step_raw.get("if")),
        line_number=step_raw.get(_LINE_KEY),
    )
    uses_str = step_raw.get("uses")
    if isinstance(uses_str, str) and uses_str:
        return Step(
            kind=StepKind.ACTION,
            uses=_parse_action_ref(uses_str),
            with_args=_string_map(step_raw.get("with")),
            **common,
        )
    run = step_raw.get("run")
    if run is not None:
        return Step(kind=StepKind.RUN, run=str(run), **common)
    logger.debug("Skipping step %d: neither 'run' nor 'uses'", index)
    return None


def _parse_triggers(on_field: Union[str, list[Any], dict[Any, Any], None]) -> list[Trigger]:
    """Normalize the 'on' field into a list of Trigger entries."""
    if isinstance(on_field, str):
        return [Trigger(on_field)]
    if isinstance(on_field, list):
        return [Trigger(kind) for kind in on_field if isinstance(kind, str)]
    if isinstance(on_field, dict):
        triggers = []
        for kind, options in on_field.items():
            if kind == _LINE_KEY or not isinstance(kind, str):
                continue
            types: tuple[str, ...] = ()
            if isinstance(options, dict):
                raw_types = options.get("types")
                if isinstance(raw_types, str):
                    types = (raw_types,)
                elif isinstance(raw_types, list):
                    types = tuple(str(t) for t in raw_types)
            triggers.append(Trigger(kind, types))
        return triggers
    return []


def _parse_environment(env_field: Any) -> Optional[str]:
    """Deployment environment name from the string or mapping form."""
    if isinstance(env_field, dict):
        env_field = env_field.get("name")
    if env_field is None:
        return None
    name = str(env_field).strip()
    return name or None


def _parse_job(job_id: str, job_raw: dict[str, Any]) -> Job:
    """Parse a raw job dictionary into a Job dataclass."""
    steps_raw = job_raw.get("steps")
    if not isinstance(steps_raw, list):
        steps_raw = []
    steps = []
    for index, step_raw in enumerate(steps_raw):
        if not isinstance(step_raw, dict):
            logger.debug("Skipping non-mapping step %d in job '%s'", index, job_id)
            continue
        step = _parse_step(index, step_raw)
        if step is not None:
            steps.append(step)
    logger.debug("Parsed job '%s' with %d step(s)", job_id, len(steps))

    secrets_raw = job_raw.get("secrets")
    uses = job_raw.get("uses")
    return Job(
        job_id=job_id,
        name=_optional_text(job_raw.get("name")),
        steps=steps,
        env=_string_map(job_raw.get("env")),
        environment=_parse_environment(job_raw.get("environment")),
        if_condition=_optional_text(job_raw.get("if")),
        uses=uses if isinstance(uses, str) else None,
        with_args=_string_map(job_raw.get("with")),
        secrets=_string_map(secrets_raw),
        inherits_secrets=secrets_raw == "inherit",
        line_number=job_raw.get(_LINE_KEY),
    )


def parse_workflow_content(file_path: str, content: Union[bytes, str]) -> WorkflowDocument:
    """
    Parse the content of a single workflow file.

    Args:
        file_path: Repository path of the file; used for the extension check
                   and carried into every finding.
        content: Raw file content.

    Returns:
        A WorkflowDocument. Files that are not workflows yield
        WorkflowDocument.empty(file_path); this function does not raise
        for bad input.
    """
    if not _is_yaml_path(file_path):
        logger.debug("Not a YAML file, nothing to parse: %s", file_path)
        return WorkflowDocument.empty(file_path)

    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Skipping non UTF-8 workflow %s: %s", file_path, e)
            return WorkflowDocument.empty(file_path)

    try:
        raw = yaml.load(content, Loader=_LineLoader)  # noqa: S506  # _LineLoader is safe
    except yaml.YAMLError as e:
        logger.warning("Skipping invalid workflow %s: %s", file_path, e)
        return WorkflowDocument.empty(file_path)

    if not isinstance(raw, dict):
        logger.warning("Skipping workflow that is not a YAML mapping: %s", file_path)
        return WorkflowDocument.empty(file_path)

    # PyYAML follows YAML 1.1 and reads the bare key 'on' as boolean True
    on_field = raw.get("on", raw.get(True))
    jobs_raw = raw.get("jobs")
    if on_field is None and jobs_raw is None:
        logger.debug("No 'on' or 'jobs' key, not a workflow: %s", file_path)
        return WorkflowDocument.empty(file_path)

    jobs = []
    if isinstance(jobs_raw, dict):
        for job_id, job_data in jobs_raw.items():
            if job_id == _LINE_KEY:
                continue
            if not isinstance(job_data, dict):
                logger.debug("Skipping non-mapping job '%s' in %s", job_id, file_path)
                continue
            jobs.append(_parse_job(str(job_id), job_data))

    triggers = _parse_triggers(on_field)
    logger.debug(
        "Parsed '%s': %d job(s), triggers=%s",
        raw.get("name", "(unnamed)"), len(jobs), [t.kind for t in triggers],
    )

    return WorkflowDocument(
        file_path=file_path,
        name=_optional_text(raw.get("name")),
        triggers=triggers,
        env=_string_map(raw.get("env")),
        jobs=jobs,
        line_number=raw.get(_LINE_KEY),
    )


def parse_workflow(file_path: str) -> WorkflowDocument:
    """
    Parse a single workflow file from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {file_path}")

    logger.info("Parsing workflow: %s", file_path)
    return parse_workflow_content(str(path), path.read_bytes())
