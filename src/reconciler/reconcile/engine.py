from __future__ import annotations

import logging
from typing import Iterable, List

from reconciler.reconcile.index import WorkflowIndex
from reconciler.reconcile.paths import match_path_filters
from reconciler.reconcile.types import (
    ChangeSet,
    Decision,
    MatchResult,
    NoWorkflow,
    PathMatchOrUndetermined,
    PathMismatch,
)

logger = logging.getLogger("reconciler")


def decide(check: str, index: WorkflowIndex, changed: ChangeSet) -> Decision:
    workflow = index.resolve(check)
    if workflow is None:
        logger.info("No workflow found with job '%s'", check)
        return NoWorkflow(check=check)

    logger.info("Found workflow for check '%s': %s", check, workflow.file_id)

    match = match_path_filters(workflow.path_filters, changed.paths)

    if match is MatchResult.not_matched:
        logger.info(
            "No changed paths match filters of %s for '%s'", workflow.file_id, check
        )
        return PathMismatch(check=check, workflow=workflow)

    if match is MatchResult.undetermined:
        logger.info("No path filters defined for workflow with job '%s'", check)
    else:
        logger.info("Changed paths match filters for '%s', check will run normally", check)
    return PathMatchOrUndetermined(check=check, workflow=workflow, match=match)


def decide_all(
    checks: Iterable[str], index: WorkflowIndex, changed: ChangeSet
) -> List[Decision]:
    return [decide(check, index, changed) for check in checks]
