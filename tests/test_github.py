import aiohttp
import pytest

from reconciler.errors import CollaboratorFetchError
from reconciler.github import (
    get_changed_paths,
    get_required_checks,
    synthetic_success_sink,
)
from reconciler.github.api import API
from reconciler.github.model import PrFile, Ruleset, RulesetSummary
from reconciler.reconcile.types import PublishTarget


def _ruleset(id: int, name: str, *contexts: str, extra_rules=()) -> Ruleset:
    rules = [{"type": "deletion"}, *extra_rules]
    if contexts:
        rules.append(
            {
                "type": "required_status_checks",
                "parameters": {
                    "strict_required_status_checks_policy": False,
                    "required_status_checks": [{"context": c} for c in contexts],
                },
            }
        )
    return Ruleset.model_validate({"id": id, "name": name, "rules": rules})


class _FakeAPI:
    def __init__(self, *, rulesets=(), files=(), fail_files=False):
        self.rulesets = {rs.id: rs for rs in rulesets}
        self.files = list(files)
        self.fail_files = fail_files
        self.ruleset_calls = []
        self.statuses = []
        self.check_runs = []

    async def get_rulesets(self, repo_full_name):
        for rs in self.rulesets.values():
            yield RulesetSummary(id=rs.id, name=rs.name)

    async def get_ruleset(self, repo_full_name, ruleset_id):
        self.ruleset_calls.append(ruleset_id)
        return self.rulesets[ruleset_id]

    async def get_pull_request_files(self, repo_full_name, number):
        for f in self.files:
            yield f
        if self.fail_files:
            raise aiohttp.ClientConnectionError("connection reset")

    async def post_commit_status(self, repo_full_name, sha, status):
        self.statuses.append((repo_full_name, sha, status))

    async def post_check_run(self, repo_full_name, check_run):
        self.check_runs.append((repo_full_name, check_run))


@pytest.mark.asyncio
async def test_required_checks_from_named_rulesets():
    api = _FakeAPI(
        rulesets=[
            _ruleset(1, "main protection", "frontend-tests", "backend-tests"),
            _ruleset(2, "release", "release-check"),
            _ruleset(3, "org defaults", "backend-tests", "lint"),
        ]
    )

    checks = await get_required_checks(
        api, "org/repo", ["main protection", "org defaults", "does not exist"]
    )

    assert checks == ["frontend-tests", "backend-tests", "lint"]
    assert api.ruleset_calls == [1, 3]


@pytest.mark.asyncio
async def test_rulesets_without_status_checks():
    api = _FakeAPI(rulesets=[_ruleset(1, "main")])
    assert await get_required_checks(api, "org/repo", ["main"]) == []


@pytest.mark.asyncio
async def test_fetch_errors_are_wrapped():
    class _BrokenAPI(_FakeAPI):
        async def get_rulesets(self, repo_full_name):
            raise aiohttp.ClientConnectionError("offline")
            yield  # noqa: B018

    with pytest.raises(CollaboratorFetchError, match="offline"):
        await get_required_checks(_BrokenAPI(), "org/repo", ["main"])

    api = _FakeAPI(files=[], fail_files=True)
    with pytest.raises(CollaboratorFetchError, match="org/repo#7"):
        await get_changed_paths(api, "org/repo", 7)


@pytest.mark.asyncio
async def test_changed_paths_include_renamed_sources():
    api = _FakeAPI(
        files=[
            PrFile(filename="frontend/app.ts", status="modified"),
            PrFile(
                filename="docs/new.md",
                previous_filename="frontend/old.md",
                status="renamed",
            ),
            PrFile(filename="frontend/app.ts", status="modified"),
        ]
    )
    paths = await get_changed_paths(api, "org/repo", 7)
    assert paths == ["frontend/app.ts", "docs/new.md", "frontend/old.md"]


def _target(reason: str = "No workflow with job 'ghost' found in repository"):
    return PublishTarget(
        owner="org", repo="repo", sha="b" * 40, check_name="ghost", reason=reason
    )


@pytest.mark.asyncio
async def test_status_sink_posts_success_status():
    api = _FakeAPI()
    sink = synthetic_success_sink(api, "status")

    await sink(_target("x" * 200))

    ((repo, sha, status),) = api.statuses
    assert repo == "org/repo"
    assert sha == "b" * 40
    assert status.state == "success"
    assert status.context == "ghost"
    assert len(status.description) == 140
    assert status.description.endswith("...")


@pytest.mark.asyncio
async def test_check_run_sink_posts_completed_check_run():
    api = _FakeAPI()
    sink = synthetic_success_sink(api, "check_run")

    await sink(_target())

    ((repo, check_run),) = api.check_runs
    assert repo == "org/repo"
    assert check_run.name == "ghost"
    assert check_run.status == "completed"
    assert check_run.conclusion == "success"
    assert check_run.output.summary == _target().reason


def test_unknown_sink_mode():
    with pytest.raises(ValueError):
        synthetic_success_sink(_FakeAPI(), "carrier-pigeon")


class _FakeGitHub:
    def __init__(self, pages=None, item=None):
        self.pages = pages or {}
        self.item = item
        self.requests = []

    async def getiter(self, url):
        self.requests.append(("GET", url, None))
        for item in self.pages.get(url, []):
            yield item

    async def getitem(self, url):
        self.requests.append(("GET", url, None))
        return self.item

    async def post(self, url, data):
        self.requests.append(("POST", url, data))
        return {}


@pytest.mark.asyncio
async def test_api_lists_rulesets_including_parents():
    url = "/repos/org/repo/rulesets?includes_parents=true"
    gh = _FakeGitHub(pages={url: [{"id": 5, "name": "main", "enforcement": "active"}]})
    api = API(gh)

    rulesets = [rs async for rs in api.get_rulesets("org/repo")]

    assert rulesets == [RulesetSummary(id=5, name="main", enforcement="active")]
    assert api.call_count == 1


@pytest.mark.asyncio
async def test_api_ruleset_detail():
    gh = _FakeGitHub(
        item={
            "id": 5,
            "name": "main",
            "rules": [
                {
                    "type": "required_status_checks",
                    "parameters": {
                        "required_status_checks": [
                            {"context": "build", "integration_id": 15368}
                        ]
                    },
                }
            ],
        }
    )
    ruleset = await API(gh).get_ruleset("org/repo", 5)

    assert gh.requests == [("GET", "/repos/org/repo/rulesets/5", None)]
    (rule,) = ruleset.rules
    assert [c.context for c in rule.required_status_checks] == ["build"]
    assert rule.required_status_checks[0].integration_id == 15368


@pytest.mark.asyncio
async def test_api_post_commit_status():
    gh = _FakeGitHub()
    api = API(gh)
    await synthetic_success_sink(api, "status")(_target())

    assert gh.requests == [
        (
            "POST",
            "/repos/org/repo/statuses/" + "b" * 40,
            {
                "state": "success",
                "context": "ghost",
                "description": "No workflow with job 'ghost' found in repository",
            },
        )
    ]


@pytest.mark.asyncio
async def test_api_post_check_run_formats_timestamps():
    gh = _FakeGitHub()
    api = API(gh)
    await synthetic_success_sink(api, "check_run")(_target())

    ((method, url, data),) = gh.requests
    assert method == "POST"
    assert url == "/repos/org/repo/check-runs"
    assert data["conclusion"] == "success"
    assert data["head_sha"] == "b" * 40
    assert data["completed_at"].endswith("Z")
    assert data["output"]["title"] == "Skipped"
