# detector_pipeline/errors.py
# Exception taxonomy for the orchestrator and the process exit codes they map to.

from typing import Optional, Sequence

EXIT_OK = 0
EXIT_EXECUTION = 1
EXIT_USAGE = 2
EXIT_VALIDATION = 3


class DetectorError(Exception):
    """Base class for every error raised by the orchestrator."""


class ConfigError(DetectorError):
    """The configuration file could not be read, or names a field that does not exist."""


class UsageError(DetectorError):
    """Unrecognised flag or flag combination on the command line."""


class ValidationError(DetectorError):
    """A requested stage is missing one of its inputs."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class MissingLabelFile(ValidationError):
    def __init__(self, stage: Optional[str] = None):
        super().__init__("--label_file FILE_NAME is required.", stage)


class LabelFileNotFound(ValidationError):
    def __init__(self, path: str, stage: Optional[str] = None):
        super().__init__(f"{path} not found.", stage)
        self.path = path


class MissingParameter(ValidationError):
    def __init__(self, field: str, stage: Optional[str] = None):
        super().__init__(f"{field} is required but was not set.", stage)
        self.field = field


class EmptyFeaturePattern(ValidationError):
    def __init__(self, field: str, stage: Optional[str] = None):
        super().__init__(
            f"Cannot build the feature pattern: {field} is empty.", stage
        )
        self.field = field


class InvalidFraction(ValidationError):
    def __init__(self, value: str, stage: Optional[str] = None):
        super().__init__(
            f"Training fraction must be a number in (0, 1], got {value!r}.", stage
        )
        self.value = value


class ExecutionError(DetectorError):
    """An external tool exited non-zero or could not be started."""

    def __init__(self, message: str, command: Sequence[str] = (), returncode: Optional[int] = None,
                 failures: Sequence["ExecutionError"] = ()):
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        # Individual failures when one stage fans out to several invocations.
        self.failures = list(failures)
