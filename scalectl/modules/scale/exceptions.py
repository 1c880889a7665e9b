"""Exceptions raised while deploying a Storage Scale cluster."""
from typing import List, Optional


class ScaleDeployError(Exception):
    """Base class for fatal deployment errors."""
    pass


class ConfigurationError(ScaleDeployError):
    """The deployment configuration could not be loaded or is invalid."""
    pass


class PreconditionError(ScaleDeployError):
    """A local precondition is not met; nothing has been changed yet."""
    pass


class StepFailedError(ScaleDeployError):
    """A required mutating step failed."""

    def __init__(self, step: str, returncode: int, output: str = ''):
        self.step = step
        self.returncode = returncode
        self.output = output
        message = f"{step} failed (exit code {returncode})"
        if output:
            message = f"{message}: {output}"
        super().__init__(message)


class BroadcastUnavailableError(ScaleDeployError):
    """The parallel shell used for broadcasts could not be run at all."""
    pass


class CommandResolutionError(ScaleDeployError):
    """Every strategy of a resolution chain failed."""

    def __init__(self, command: str, tried: List[str], output: Optional[str] = None):
        self.command = command
        self.tried = tried
        self.output = output or ''
        message = f"{command} failed via {', '.join(tried)}"
        if self.output:
            message = f"{message}: {self.output}"
        super().__init__(message)
