from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Mapping, Optional

from reconciler.reconcile.types import WorkflowDefinition

logger = logging.getLogger("reconciler")

_SEPARATOR_RUN = re.compile(r"[\s_-]+")


def normalize(name: str) -> str:
    """Canonical comparison key for a job identifier or display name.

    Trims, lower-cases and collapses every run of whitespace, underscores and
    hyphens into one space, so ``Frontend_Tests``, ``frontend tests`` and
    ``frontend-tests`` all compare equal.
    """
    return _SEPARATOR_RUN.sub(" ", name.strip().lower())


class WorkflowIndex:
    """Lookup from job names to the workflow declaring them.

    Raw names and normalized names are kept in separate tiers. In both, the
    first workflow (in the order passed to :meth:`build`) to claim a name keeps
    it.
    """

    def __init__(
        self,
        exact: Mapping[str, WorkflowDefinition],
        normalized: Mapping[str, WorkflowDefinition],
    ):
        self._exact: Dict[str, WorkflowDefinition] = dict(exact)
        self._normalized: Dict[str, WorkflowDefinition] = dict(normalized)

    @classmethod
    def build(cls, definitions: Iterable[WorkflowDefinition]) -> "WorkflowIndex":
        definitions = tuple(definitions)
        exact: Dict[str, WorkflowDefinition] = {}
        normalized: Dict[str, WorkflowDefinition] = {}

        for definition in definitions:
            for job in definition.jobs:
                for name in job.names:
                    if name in exact:
                        if exact[name] is not definition:
                            logger.debug(
                                "Job name '%s' in %s already claimed by %s",
                                name,
                                definition.file_id,
                                exact[name].file_id,
                            )
                    else:
                        exact[name] = definition

                    key = normalize(name)
                    if key not in normalized:
                        normalized[key] = definition

        logger.debug(
            "Indexed %d workflows, %d job names, %d normalized keys",
            len(definitions),
            len(exact),
            len(normalized),
        )
        return cls(exact, normalized)

    def resolve_exact(self, name: str) -> Optional[WorkflowDefinition]:
        return self._exact.get(name)

    def resolve_normalized(self, name: str) -> Optional[WorkflowDefinition]:
        return self._normalized.get(normalize(name))

    def resolve(self, name: str) -> Optional[WorkflowDefinition]:
        definition = self.resolve_exact(name)
        if definition is not None:
            return definition
        return self.resolve_normalized(name)

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._exact)
