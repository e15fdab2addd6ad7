import io
import logging
from pathlib import Path
from typing import List, Union

import pydantic
import yaml

from reconciler.errors import WorkflowParseError
from reconciler.metric import workflow_parse_error_count
from reconciler.model import WorkflowDocument
from reconciler.reconcile.types import WorkflowDefinition

logger = logging.getLogger("reconciler")

WORKFLOW_SUFFIXES = (".yml", ".yaml")


def parse_workflow(file_id: str, content: str) -> WorkflowDefinition:
    try:
        data = yaml.safe_load(io.StringIO(content))
    except yaml.YAMLError as e:
        raise WorkflowParseError(f"Invalid YAML: {e}", file_id=file_id) from e

    if data is None:
        raise WorkflowParseError("Workflow document is empty", file_id=file_id)
    if not isinstance(data, dict):
        raise WorkflowParseError(
            f"Expected a mapping at top level, got {type(data).__name__}",
            file_id=file_id,
        )

    try:
        document = WorkflowDocument.model_validate(data)
    except pydantic.ValidationError as e:
        raise WorkflowParseError(str(e), file_id=file_id) from e

    return document.to_definition(file_id)


def discover_workflow_files(directory: Path) -> List[Path]:
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file() and p.suffix in WORKFLOW_SUFFIXES
    )


def load_workflow_definitions(
    directory: Union[str, Path],
) -> List[WorkflowDefinition]:
    """Parse every workflow file in ``directory`` in filename order.

    Documents that fail to read or parse are logged and skipped.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Workflow directory %s does not exist", directory)
        return []

    definitions: List[WorkflowDefinition] = []
    for path in discover_workflow_files(directory):
        try:
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise WorkflowParseError(str(e), file_id=path.name) from e
            definition = parse_workflow(path.name, content)
        except WorkflowParseError as e:
            workflow_parse_error_count.inc()
            logger.warning("Failed to read workflow: %s", e)
            continue

        logger.debug(
            "Workflow %s: jobs=%s path_filters=%s",
            definition.file_id,
            [j.key for j in definition.jobs],
            sorted(definition.path_filters),
        )
        definitions.append(definition)

    logger.info("Loaded %d workflow definitions from %s", len(definitions), directory)
    return definitions
