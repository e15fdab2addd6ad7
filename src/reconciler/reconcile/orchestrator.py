from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable, List, Optional, TypeVar

from reconciler.errors import PublishExhaustionError, RunTimeoutError
from reconciler.github import get_changed_paths, get_required_checks
from reconciler.github.api import API
from reconciler.metric import decision_counter
from reconciler.reconcile.engine import decide
from reconciler.reconcile.index import WorkflowIndex
from reconciler.reconcile.publisher import StatusPublisher
from reconciler.reconcile.types import (
    ChangeSet,
    PublishTarget,
    RunReport,
    WorkflowDefinition,
)

logger = logging.getLogger("reconciler")

T = TypeVar("T")


async def reconcile_pull_request(
    *,
    api: API,
    owner: str,
    repo: str,
    pr_number: int,
    head_sha: str,
    ruleset_names: Iterable[str],
    definitions: Iterable[WorkflowDefinition],
    publisher: StatusPublisher,
    dry_run: bool = False,
) -> RunReport:
    repo_full_name = f"{owner}/{repo}"
    report = RunReport()

    ruleset_names = list(ruleset_names)
    logger.info("Requested rulesets: %s", ", ".join(ruleset_names))

    report.required_checks = await get_required_checks(
        api, repo_full_name, ruleset_names
    )
    logger.info(
        "Found %d required checks: %s",
        len(report.required_checks),
        ", ".join(report.required_checks),
    )
    logger.info("Processing checks for commit: %s", head_sha)

    index = WorkflowIndex.build(definitions)

    changed = ChangeSet.of(await get_changed_paths(api, repo_full_name, pr_number))
    logger.info("Changed files in PR: %s", ", ".join(sorted(changed.paths)))

    failures: List[PublishExhaustionError] = []

    for check in report.required_checks:
        decision = decide(check, index, changed)
        report.decisions.append(decision)
        decision_counter.labels(kind=decision.kind).inc()

        if not decision.requires_publication:
            continue

        target = PublishTarget(
            owner=owner,
            repo=repo,
            sha=head_sha,
            check_name=check,
            reason=decision.description,
        )

        if dry_run:
            logger.info(
                "Dry run: would mark '%s' as successful on %s (%s)",
                check,
                head_sha,
                target.description,
            )
            continue

        logger.info("Marking '%s' as successful for commit %s", check, head_sha)
        try:
            outcome = await publisher.publish_success(target)
        except PublishExhaustionError as e:
            logger.error("%s", e)
            failures.append(e)
            continue
        report.published.append(outcome)
        logger.info("Status created for '%s' on commit %s", check, head_sha)

    if failures:
        logger.error(
            "Publishing failed for %d of %d checks", len(failures), len(report.decisions)
        )
        raise failures[0]

    return report


async def run_with_deadline(coro: Awaitable[T], timeout: Optional[float]) -> T:
    """Await ``coro``, abandoning it (and any pending retries) after ``timeout`` seconds."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise RunTimeoutError(f"Reconciliation did not finish within {timeout}s") from e
