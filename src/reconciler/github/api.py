from datetime import datetime
from typing import AsyncIterator

from gidgethub.abc import GitHubAPI
import logging

from reconciler.github.model import (
    CheckRun,
    CommitStatus,
    PrFile,
    PullRequest,
    Ruleset,
    RulesetSummary,
)
from reconciler.metric import record_api_call

logger = logging.getLogger("reconciler")


class API:
    gh: GitHubAPI

    call_count: int

    def __init__(self, gh: GitHubAPI):
        self.gh = gh
        self.call_count = 0

    def _count(self, url: str) -> None:
        self.call_count += 1
        record_api_call(url)

    async def get_rulesets(self, repo_full_name: str) -> AsyncIterator[RulesetSummary]:
        url = f"/repos/{repo_full_name}/rulesets?includes_parents=true"
        self._count(url)
        logger.debug("Get rulesets %s", url)
        async for item in self.gh.getiter(url):
            yield RulesetSummary.model_validate(item)

    async def get_ruleset(self, repo_full_name: str, ruleset_id: int) -> Ruleset:
        url = f"/repos/{repo_full_name}/rulesets/{ruleset_id}"
        self._count(url)
        logger.debug("Get ruleset %s", url)
        return Ruleset.model_validate(await self.gh.getitem(url))

    async def get_pull(self, repo_full_name: str, number: int) -> PullRequest:
        url = f"/repos/{repo_full_name}/pulls/{number}"
        self._count(url)
        logger.debug("Get pull %s", url)
        return PullRequest.model_validate(await self.gh.getitem(url))

    async def get_pull_request_files(
        self, repo_full_name: str, number: int
    ) -> AsyncIterator[PrFile]:
        url = f"/repos/{repo_full_name}/pulls/{number}/files?per_page=100"
        self._count(url)
        logger.debug("Getting files for PR #%d %s", number, url)
        async for item in self.gh.getiter(url):
            yield PrFile.model_validate(item)

    async def post_commit_status(
        self, repo_full_name: str, sha: str, status: CommitStatus
    ) -> None:
        url = f"/repos/{repo_full_name}/statuses/{sha}"
        self._count(url)
        logger.debug("Creating commit status '%s' on sha %s", status.context, sha)
        await self.gh.post(url, data=status.model_dump(exclude_none=True))

    async def post_check_run(self, repo_full_name: str, check_run: CheckRun) -> None:
        fields = {"name", "head_sha", "status", "started_at"}
        if check_run.completed_at is not None:
            fields.add("completed_at")
        if check_run.conclusion is not None:
            fields.add("conclusion")
        payload = check_run.model_dump(include=fields, exclude_none=True)

        if check_run.output is not None:
            payload["output"] = check_run.output.model_dump(exclude_none=True)

        for k, v in payload.items():
            if isinstance(v, datetime):
                payload[k] = v.strftime("%Y-%m-%dT%H:%M:%SZ")

        url = f"/repos/{repo_full_name}/check-runs"
        self._count(url)
        logger.debug("Creating check run %s on sha %s", url, check_run.head_sha)
        await self.gh.post(url, data=payload)
