from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple, Union


class MatchResult(Enum):
    undetermined = 1
    matched = 2
    not_matched = 3


@dataclass(frozen=True)
class JobEntry:
    key: str
    display_name: Optional[str] = None

    @property
    def names(self) -> Tuple[str, ...]:
        if self.display_name is None:
            return (self.key,)
        return (self.key, self.display_name)


@dataclass(frozen=True)
class WorkflowDefinition:
    file_id: str
    jobs: Tuple[JobEntry, ...] = ()
    # Empty means "no filter", which never proves a change irrelevant.
    path_filters: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ChangeSet:
    paths: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, paths) -> "ChangeSet":
        return cls(paths=frozenset(paths))


@dataclass(frozen=True)
class NoWorkflow:
    check: str
    workflow: None = None
    requires_publication = True

    @property
    def kind(self) -> str:
        return "no_workflow"

    @property
    def description(self) -> str:
        return f"No workflow with job '{self.check}' found in repository"


@dataclass(frozen=True)
class PathMismatch:
    check: str
    workflow: WorkflowDefinition
    requires_publication = True

    @property
    def kind(self) -> str:
        return "path_mismatch"

    @property
    def description(self) -> str:
        filters = ", ".join(sorted(self.workflow.path_filters))
        return (
            f"Skipped: no files match {self.workflow.file_id} path filters ({filters})"
        )


@dataclass(frozen=True)
class PathMatchOrUndetermined:
    check: str
    workflow: WorkflowDefinition
    match: MatchResult = MatchResult.matched
    requires_publication = False

    @property
    def kind(self) -> str:
        return "path_match_or_undetermined"


Decision = Union[NoWorkflow, PathMismatch, PathMatchOrUndetermined]


# GitHub rejects commit status descriptions longer than this
MAX_DESCRIPTION_LENGTH = 140


def truncate_description(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


@dataclass(frozen=True)
class PublishTarget:
    owner: str
    repo: str
    sha: str
    check_name: str
    reason: str

    @property
    def description(self) -> str:
        return truncate_description(self.reason)


@dataclass(frozen=True)
class PublishOutcome:
    target: PublishTarget
    attempts: int


@dataclass
class RunReport:
    required_checks: List[str] = field(default_factory=list)
    decisions: List[Decision] = field(default_factory=list)
    published: List[PublishOutcome] = field(default_factory=list)

    def decision_for(self, check: str) -> Optional[Decision]:
        for decision in self.decisions:
            if decision.check == check:
                return decision
        return None
