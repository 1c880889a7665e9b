"""Typed wrapper around the spectrumscale install toolkit.

Every operation is built as an argument list; nothing is passed through a
shell.
"""
import logging
import shlex
from typing import Callable, List, Optional

from . import output
from .models import CommandResult, NodeRoles
from .utils import run_command

logger = logging.getLogger("scale.toolkit")


def role_flags(roles: NodeRoles) -> List[str]:
    """Toolkit flags for a node's roles."""
    flags = []
    if roles.admin:
        flags.append('-a')
    if roles.manager:
        flags.append('-m')
    if roles.quorum:
        flags.append('-q')
    if roles.gui:
        flags.append('-g')
    return flags


class Toolkit:
    """Builds and runs spectrumscale commands."""

    def __init__(self, path: str, runner: Callable[..., CommandResult] = run_command):
        self.path = path
        self.runner = runner

    def command(self, *args: str) -> List[str]:
        return [self.path, *args]

    def setup_command(self, mgmt_ip: str, cluster_name: Optional[str] = None) -> List[str]:
        cmd = self.command('setup', '-s', mgmt_ip)
        if cluster_name:
            cmd += ['-c', cluster_name]
        return cmd

    def node_add_command(self, node: str, roles: NodeRoles) -> List[str]:
        return self.command('node', 'add', *role_flags(roles), '-n', node)

    def nsd_add_command(self, node: str, device: str, failure_group: int) -> List[str]:
        return self.command('nsd', 'add', '-p', node, device, '-fg', str(failure_group))

    def node_list_command(self) -> List[str]:
        return self.command('node', 'list')

    def callhome_disable_command(self) -> List[str]:
        return self.command('callhome', 'disable')

    def install_command(self, precheck: bool = False) -> List[str]:
        if precheck:
            return self.command('install', '-pr')
        return self.command('install')

    def run(self, cmd: List[str], capture: bool = False) -> CommandResult:
        """Run a toolkit command, echoing it first."""
        output.step(shlex.join(cmd))
        result = self.runner(cmd, capture=capture)
        if result.returncode != 0:
            logger.debug(f"{shlex.join(cmd)} exited with {result.returncode}")
        return result
