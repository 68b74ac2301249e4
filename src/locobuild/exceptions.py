# src/locobuild/exceptions.py
from typing import Optional


class LocobuildError(Exception):
    """Base class for every error raised by locobuild."""


class CompileError(LocobuildError):
    """A command definition is malformed. Raised while loading, never at call time."""

    def __init__(self, command: str, message: str):
        super().__init__(f"{message}: {command}")
        self.command = command


class CommandNotFound(LocobuildError):
    """A command name could not be resolved against the registry."""

    def __init__(self, name: str):
        super().__init__(f"Command not found: {name}")
        self.name = name


class ActionFailure(LocobuildError):
    """An action's underlying operation failed (bad arguments, process exit, I/O)."""


class TemplateError(ActionFailure):
    """A template references a variable that is not in scope."""

    def __init__(self, template: str, key: str):
        super().__init__(f"Unresolved variable '{key}' in template '{template}'")
        self.template = template
        self.key = key


class ProcessFailure(ActionFailure):
    """An external process exited with a non-zero code."""

    def __init__(self, command: str, code: int):
        super().__init__(f'Command "{command}" exited with code {code}')
        self.command = command
        self.code = code


class ProcessTimeoutError(ActionFailure):
    """An external process ran past its configured timeout and was killed."""

    def __init__(self, command: str, timeout: float):
        super().__init__(f'Command "{command}" timed out after {timeout}s')
        self.command = command
        self.timeout = timeout


class RepositorySyncError(ActionFailure):
    """A git invocation made by the synchronizer failed."""

    def __init__(self, path: str, args, code: int, stderr: Optional[list] = None):
        message = f"git {' '.join(args)} failed in {path} with code {code}"
        if stderr:
            message += f": {stderr[-1]}"
        super().__init__(message)
        self.path = path
        self.args_ = list(args)
        self.code = code
        self.stderr = stderr or []


class BuildError(ActionFailure):
    """The site build tool reported an error."""


class RepositoryStateError(LocobuildError):
    """Repository metadata can't be parsed. Always fatal, never suppressed."""


class PersistenceError(LocobuildError):
    """The build record could not be read or written."""
