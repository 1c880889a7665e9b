"""Local command execution helpers."""
import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from .models import CommandResult

logger = logging.getLogger("scale.utils")


def run_command(
    cmd: List[str],
    cwd: Optional[Union[str, Path]] = None,
    capture: bool = True,
) -> CommandResult:
    """Run a local command.

    Args:
        cmd: Argument list; never passed through a shell
        cwd: Working directory
        capture: Capture output instead of streaming it to the terminal

    Returns:
        CommandResult. A missing executable gives exit code 127.
    """
    logger.debug(f"Running: {shlex.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        return CommandResult(returncode=127, stderr=str(e))
    except PermissionError as e:
        return CommandResult(returncode=126, stderr=str(e))
    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout or '',
        stderr=result.stderr or '',
    )
