from typing import Optional


class ReconcilerError(Exception):
    pass


class ConfigurationError(ReconcilerError):
    pass


class CollaboratorFetchError(ReconcilerError):
    pass


class RunTimeoutError(ReconcilerError):
    pass


class WorkflowParseError(ReconcilerError):
    file_id: str

    def __init__(self, *args, **kwargs):
        self.file_id = kwargs.pop("file_id")
        super().__init__(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.file_id}: {super().__str__()}"


class GlobPatternError(ReconcilerError):
    pattern: str

    def __init__(self, *args, **kwargs):
        self.pattern = kwargs.pop("pattern")
        super().__init__(*args, **kwargs)


class PublishExhaustionError(ReconcilerError):
    check_name: str
    attempts: int
    last_error: Optional[BaseException]

    def __init__(
        self,
        check_name: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        self.check_name = check_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to publish status for '{check_name}' after {attempts} attempts: {last_error}"
        )
