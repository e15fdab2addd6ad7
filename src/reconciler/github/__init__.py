from datetime import datetime, timezone
import logging
from typing import Iterable, List, Literal

import aiohttp
import gidgethub
import pydantic

from reconciler.errors import CollaboratorFetchError
from reconciler.github.api import API
from reconciler.github.model import CheckRun, CheckRunOutput, CommitStatus
from reconciler.reconcile.publisher import Transport
from reconciler.reconcile.types import PublishTarget

logger = logging.getLogger("reconciler")

FETCH_ERRORS = (gidgethub.GitHubException, aiohttp.ClientError, pydantic.ValidationError)


async def get_required_checks(
    api: API, repo_full_name: str, ruleset_names: Iterable[str]
) -> List[str]:
    """Collect the required status check contexts of the named rulesets.

    Checks declared by several rulesets are reported once, in first-seen order.
    """
    wanted = set(ruleset_names)
    try:
        logger.info("Fetching repository rulesets...")
        all_rulesets = [rs async for rs in api.get_rulesets(repo_full_name)]
        rulesets = [rs for rs in all_rulesets if rs.name in wanted]
        logger.info(
            "Found %d matching rulesets out of %d total",
            len(rulesets),
            len(all_rulesets),
        )

        for missing in sorted(wanted - {rs.name for rs in rulesets}):
            logger.warning("Ruleset '%s' not found in %s", missing, repo_full_name)

        checks = {}
        for summary in rulesets:
            logger.info("Processing ruleset: %s", summary.name)
            ruleset = await api.get_ruleset(repo_full_name, summary.id)
            for rule in ruleset.rules:
                for check in rule.required_status_checks:
                    if check.context not in checks:
                        logger.info("  - Found required check: %s", check.context)
                    checks.setdefault(check.context, None)
    except FETCH_ERRORS as e:
        raise CollaboratorFetchError(
            f"Failed to fetch rulesets for {repo_full_name}: {e}"
        ) from e

    return list(checks)


async def get_changed_paths(api: API, repo_full_name: str, number: int) -> List[str]:
    """Paths touched by the pull request, including the old path of renames."""
    paths = {}
    try:
        async for f in api.get_pull_request_files(repo_full_name, number):
            paths.setdefault(f.filename, None)
            if f.previous_filename is not None:
                paths.setdefault(f.previous_filename, None)
    except FETCH_ERRORS as e:
        raise CollaboratorFetchError(
            f"Failed to list changed files for {repo_full_name}#{number}: {e}"
        ) from e
    return list(paths)


def synthetic_success_sink(
    api: API, mode: Literal["status", "check_run"] = "status"
) -> Transport:
    async def post_status(target: PublishTarget) -> None:
        await api.post_commit_status(
            f"{target.owner}/{target.repo}",
            target.sha,
            CommitStatus(
                state="success",
                context=target.check_name,
                description=target.description,
            ),
        )

    async def post_check_run(target: PublishTarget) -> None:
        now = datetime.now(timezone.utc)
        await api.post_check_run(
            f"{target.owner}/{target.repo}",
            CheckRun(
                name=target.check_name,
                head_sha=target.sha,
                status="completed",
                conclusion="success",
                started_at=now,
                completed_at=now,
                output=CheckRunOutput(title="Skipped", summary=target.reason),
            ),
        )

    if mode == "status":
        return post_status
    if mode == "check_run":
        return post_check_run
    raise ValueError(f"Unknown publish mode {mode}")


__all__ = [
    "API",
    "get_required_checks",
    "get_changed_paths",
    "synthetic_success_sink",
]
