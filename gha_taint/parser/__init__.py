from .workflow_parser import (
    ActionRef,
    Job,
    Step,
    StepKind,
    Trigger,
    WorkflowDocument,
    parse_workflow,
    parse_workflow_content,
)

__all__ = [
    "ActionRef",
    "Job",
    "Step",
    "StepKind",
    "Trigger",
    "WorkflowDocument",
    "parse_workflow",
    "parse_workflow_content",
]
