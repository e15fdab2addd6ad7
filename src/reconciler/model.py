from typing import Any, Dict, List, Optional, Union

import pydantic

from reconciler.reconcile.types import JobEntry, WorkflowDefinition


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore", populate_by_name=True)


class WorkflowJob(Model):
    name: Optional[str] = None

    @pydantic.field_validator("name", mode="before")
    @classmethod
    def coerce_scalar_name(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PullRequestTrigger(Model):
    paths: List[str] = pydantic.Field(default_factory=list)


class WorkflowTriggers(Model):
    pull_request: Optional[PullRequestTrigger] = None


class WorkflowDocument(Model):
    name: Optional[str] = None
    on: Union[WorkflowTriggers, List[str], str, None] = None
    jobs: Dict[str, Optional[WorkflowJob]] = pydantic.Field(default_factory=dict)

    @pydantic.model_validator(mode="before")
    @classmethod
    def restore_on_key(cls, data: Any) -> Any:
        # YAML 1.1 loads a bare `on:` key as boolean True
        if isinstance(data, dict) and True in data:
            data = dict(data)
            triggers = data.pop(True)
            data.setdefault("on", triggers)
        return data

    @property
    def path_filters(self) -> List[str]:
        if not isinstance(self.on, WorkflowTriggers):
            return []
        if self.on.pull_request is None:
            return []
        return self.on.pull_request.paths

    def to_definition(self, file_id: str) -> WorkflowDefinition:
        jobs = tuple(
            JobEntry(key=key, display_name=job.name if job is not None else None)
            for key, job in self.jobs.items()
        )
        return WorkflowDefinition(
            file_id=file_id,
            jobs=jobs,
            path_filters=frozenset(self.path_filters),
        )
