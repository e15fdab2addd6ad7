from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import pydantic


class Model(pydantic.BaseModel):
    pass


def validate_commit_sha(sha: str) -> str:
    if len(sha) != 40:
        raise ValueError("Commit hash must have length 40")
    return sha


class Repository(Model):
    id: Optional[int] = None
    name: str
    full_name: Optional[str] = None
    url: Optional[str] = None


class PrConnection(Model):
    ref: str
    sha: str
    repo: Optional[Repository] = None

    @pydantic.field_validator("sha")
    @classmethod
    def check_sha(cls, sha: str) -> str:
        return validate_commit_sha(sha)


class PullRequest(Model):
    id: Optional[int] = None
    number: int
    state: Optional[Literal["open", "closed"]] = None
    title: Optional[str] = None
    head: PrConnection
    base: PrConnection
    html_url: Optional[str] = None

    def __str__(self) -> str:
        name = ""
        if self.base.repo is not None:
            name = self.base.repo.full_name or self.base.repo.name
        return f"PR({name}#{self.number})"


class PullRequestEvent(Model):
    action: Optional[str] = None
    number: Optional[int] = None
    pull_request: PullRequest


class PrFile(Model):
    sha: Optional[str] = None
    filename: str
    status: Literal[
        "added", "removed", "modified", "renamed", "copied", "changed", "unchanged"
    ]
    previous_filename: Optional[str] = None


class RulesetSummary(Model):
    id: int
    name: str
    target: Optional[str] = None
    source_type: Optional[str] = None
    enforcement: Optional[str] = None


class RequiredStatusCheck(Model):
    context: str
    integration_id: Optional[int] = None


class RulesetRule(Model):
    type: str
    parameters: Optional[Dict[str, Any]] = None

    @property
    def required_status_checks(self) -> List[RequiredStatusCheck]:
        if self.type != "required_status_checks" or not self.parameters:
            return []
        return [
            RequiredStatusCheck.model_validate(item)
            for item in self.parameters.get("required_status_checks") or []
        ]


class Ruleset(RulesetSummary):
    rules: List[RulesetRule] = pydantic.Field(default_factory=list)


class CommitStatus(Model):
    state: Literal["failure", "pending", "success", "error"]
    context: str
    description: Optional[str] = None
    target_url: Optional[str] = None


class CheckRunOutput(Model):
    title: Optional[str] = None
    summary: Optional[str] = None
    text: Optional[str] = None


class CheckRun(Model):
    name: str
    head_sha: str
    status: Literal["completed", "queued", "in_progress"] = "queued"
    conclusion: Optional[
        Literal[
            "action_required",
            "cancelled",
            "failure",
            "neutral",
            "success",
            "skipped",
            "stale",
            "timed_out",
        ]
    ] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output: Optional[CheckRunOutput] = None

    @pydantic.field_validator("head_sha")
    @classmethod
    def check_sha(cls, sha: str) -> str:
        return validate_commit_sha(sha)
