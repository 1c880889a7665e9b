"""Local precondition checks run before any phase."""
import logging
import os
import shutil
from typing import Callable, Optional

from . import output
from .config import DeployConfig
from .exceptions import PreconditionError

logger = logging.getLogger("scale.preflight")


def check_root(geteuid: Callable[[], int] = os.geteuid) -> None:
    if geteuid() != 0:
        raise PreconditionError("Run as root.")


def check_prereqs(
    config: DeployConfig,
    which: Callable[[str], Optional[str]] = shutil.which,
    is_executable: Callable[[str], bool] = lambda p: os.path.isfile(p) and os.access(p, os.X_OK),
) -> None:
    """Check local tooling and the toolkit installation."""
    if not which('unzip'):
        raise PreconditionError("Install unzip")
    if config.broadcast.transport == 'pdsh' and not which('pdsh'):
        output.warn("Will install pdsh in Phase A")
    if not is_executable(config.toolkit.path):
        raise PreconditionError(f"Toolkit not found at {config.toolkit.path}")
    logger.debug("Preflight checks passed")
