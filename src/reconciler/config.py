import os
import logging
from pathlib import Path
from typing import List, Literal, Mapping, Optional

import dotenv
import pydantic

from reconciler.errors import ConfigurationError

dotenv.load_dotenv()

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "INFO"))

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

PUSH_GATEWAY = os.environ.get("PUSH_GATEWAY")

PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})

DEFAULT_WORKFLOW_DIR = ".github/workflows"


class Settings(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    token: str = pydantic.Field(repr=False)
    rulesets: List[str]
    repository: str
    event_name: Optional[str] = None
    event_path: Optional[str] = None
    api_url: str = "https://api.github.com"
    workflow_dir: Path = Path(DEFAULT_WORKFLOW_DIR)
    publish_mode: Literal["status", "check_run"] = "status"
    dry_run: bool = False
    retry_backoff_seconds: float = pydantic.Field(1.0, ge=0)
    run_timeout: float = pydantic.Field(300.0, gt=0)

    @pydantic.field_validator("repository")
    @classmethod
    def validate_repository(cls, value: str) -> str:
        owner, sep, repo = value.partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"Repository must look like 'owner/repo', got '{value}'")
        return value

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1]

    @property
    def is_pull_request_event(self) -> bool:
        return self.event_name in PULL_REQUEST_EVENTS


def parse_rulesets(raw: str) -> List[str]:
    names = []
    for line in raw.splitlines():
        line = line.strip()
        if len(line) >= 2 and line[0] == line[-1] and line[0] in "\"'":
            line = line[1:-1].strip()
        if line:
            names.append(line)
    return names


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    repository: Optional[str] = None,
) -> Settings:
    if environ is None:
        environ = os.environ

    token = environ.get("INPUT_GITHUB_TOKEN") or environ.get("GITHUB_TOKEN")
    if not token:
        raise ConfigurationError("Input required and not supplied: github_token")

    rulesets = parse_rulesets(environ.get("INPUT_RULESETS", ""))
    if not rulesets:
        raise ConfigurationError("Input required and not supplied: rulesets")

    repository = repository or environ.get("GITHUB_REPOSITORY")
    if not repository:
        raise ConfigurationError("GITHUB_REPOSITORY is not set")

    workspace = Path(environ.get("GITHUB_WORKSPACE") or os.getcwd())
    workflow_dir = workspace / (environ.get("INPUT_WORKFLOW_DIR") or DEFAULT_WORKFLOW_DIR)

    values = {
        "token": token,
        "rulesets": rulesets,
        "repository": repository,
        "event_name": environ.get("GITHUB_EVENT_NAME"),
        "event_path": environ.get("GITHUB_EVENT_PATH"),
        "api_url": environ.get("GITHUB_API_URL") or "https://api.github.com",
        "workflow_dir": workflow_dir,
        "publish_mode": environ.get("INPUT_PUBLISH_MODE") or "status",
        "dry_run": _flag(environ.get("INPUT_DRY_RUN")),
        "retry_backoff_seconds": environ.get("RETRY_BACKOFF_SECONDS", 1.0),
        "run_timeout": environ.get("RUN_TIMEOUT", 300.0),
    }

    try:
        return Settings.model_validate(values)
    except pydantic.ValidationError as e:
        raise ConfigurationError(str(e)) from e
