import asyncio
from contextlib import asynccontextmanager
import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import aiohttp
import cachetools
import typer
from gidgethub import aiohttp as gh_aiohttp

from reconciler.config import Settings, load_settings
from reconciler.errors import (
    CollaboratorFetchError,
    ConfigurationError,
    ReconcilerError,
)
from reconciler.github import FETCH_ERRORS, synthetic_success_sink
from reconciler.github.api import API
from reconciler.github.model import PullRequestEvent
from reconciler.logger import setup_logging
from reconciler.metric import push_metrics
from reconciler.reconcile import engine
from reconciler.reconcile.index import WorkflowIndex
from reconciler.reconcile.orchestrator import reconcile_pull_request, run_with_deadline
from reconciler.reconcile.publisher import StatusPublisher
from reconciler.reconcile.types import ChangeSet, RunReport
from reconciler.workflows import load_workflow_definitions

logger = logging.getLogger("reconciler")

T = TypeVar("T")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    setup_logging()


@asynccontextmanager
async def github_client(settings: Settings):
    async with aiohttp.ClientSession() as session:
        yield gh_aiohttp.GitHubAPI(
            session,
            "required-check-reconciler",
            oauth_token=settings.token,
            cache=httpcache,
            base_url=settings.api_url,
        )


def load_event(event_path: Optional[str]) -> PullRequestEvent:
    if not event_path:
        raise ConfigurationError("GITHUB_EVENT_PATH is not set")
    try:
        with open(event_path) as fh:
            return PullRequestEvent.model_validate(json.load(fh))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Unable to read pull request event: {e}") from e


async def reconcile(settings: Settings, api: API, pr_number: int, head_sha: str) -> RunReport:
    definitions = load_workflow_definitions(settings.workflow_dir)
    publisher = StatusPublisher(
        synthetic_success_sink(api, settings.publish_mode),
        backoff_seconds=settings.retry_backoff_seconds,
    )
    try:
        return await reconcile_pull_request(
            api=api,
            owner=settings.owner,
            repo=settings.repo,
            pr_number=pr_number,
            head_sha=head_sha,
            ruleset_names=settings.rulesets,
            definitions=definitions,
            publisher=publisher,
            dry_run=settings.dry_run,
        )
    finally:
        logger.info("GitHub API calls: %d", api.call_count)


def summarize(report: RunReport) -> None:
    for decision in report.decisions:
        workflow = decision.workflow.file_id if decision.workflow is not None else "-"
        typer.echo(f"{decision.check}: {decision.kind} ({workflow})")
    typer.echo(f"Published {len(report.published)} synthetic success result(s)")


def handle_errors(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except ReconcilerError as e:
        logger.error("Action failed: %s", e)
        typer.echo(f"::error::{e}")
        raise typer.Exit(code=1)
    finally:
        push_metrics()


@app.command()
def run():
    """Reconcile required checks for the pull request that triggered this workflow."""

    def handle():
        settings = load_settings()
        if not settings.is_pull_request_event:
            logger.info(
                "This action supports pull_request events only, got %s",
                settings.event_name,
            )
            return
        event = load_event(settings.event_path)
        pr = event.pull_request

        async def main():
            async with github_client(settings) as gh:
                return await reconcile(settings, API(gh), pr.number, pr.head.sha)

        summarize(asyncio.run(run_with_deadline(main(), settings.run_timeout)))

    handle_errors(handle)


@app.command()
def pr(
    repo: str,
    number: int,
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not publish anything"),
):
    """Reconcile required checks for pull request NUMBER of REPO (owner/name)."""

    def handle():
        settings = load_settings(repository=repo)
        if dry_run:
            settings = settings.model_copy(update={"dry_run": True})

        async def main():
            async with github_client(settings) as gh:
                api = API(gh)
                try:
                    pull = await api.get_pull(settings.repository, number)
                except FETCH_ERRORS as e:
                    raise CollaboratorFetchError(
                        f"Failed to fetch {settings.repository}#{number}: {e}"
                    ) from e
                logger.info("Processing %s", pull)
                return await reconcile(settings, api, pull.number, pull.head.sha)

        summarize(asyncio.run(run_with_deadline(main(), settings.run_timeout)))

    handle_errors(handle)


@app.command("decide")
def decide_command(
    checks: List[str],
    changed: List[str] = typer.Option([], "--changed", "-c", help="Changed path"),
    workflow_dir: Path = typer.Option(Path(".github/workflows"), "--workflow-dir"),
):
    """Show offline decisions for CHECKS given the changed paths."""
    index = WorkflowIndex.build(load_workflow_definitions(workflow_dir))
    change_set = ChangeSet.of(changed)
    for decision in engine.decide_all(checks, index, change_set):
        line = f"{decision.check}: {decision.kind}"
        if decision.requires_publication:
            line += f" -> {decision.description}"
        typer.echo(line)
