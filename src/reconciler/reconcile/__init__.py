from reconciler.reconcile.engine import decide, decide_all
from reconciler.reconcile.index import WorkflowIndex, normalize
from reconciler.reconcile.paths import match_path_filters
from reconciler.reconcile.publisher import StatusPublisher
from reconciler.reconcile.types import (
    ChangeSet,
    Decision,
    JobEntry,
    MatchResult,
    NoWorkflow,
    PathMatchOrUndetermined,
    PathMismatch,
    PublishOutcome,
    PublishTarget,
    RunReport,
    WorkflowDefinition,
)

__all__ = [
    "decide",
    "decide_all",
    "normalize",
    "match_path_filters",
    "WorkflowIndex",
    "StatusPublisher",
    "ChangeSet",
    "Decision",
    "JobEntry",
    "MatchResult",
    "NoWorkflow",
    "PathMatchOrUndetermined",
    "PathMismatch",
    "PublishOutcome",
    "PublishTarget",
    "RunReport",
    "WorkflowDefinition",
]
