"""Remote command execution across cluster nodes.

Three operations are offered:

- ``run_one``: a single blocking command on one node
- ``run_on_all``: the same command on every node concurrently, joined
  before returning (via pdsh, or a thread per node)
- ``resolve_and_run``: a read-only command resolved through an ordered
  chain of local and remote locations
"""
import logging
import os
import re
import shlex
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence

from . import output
from .exceptions import BroadcastUnavailableError, CommandResolutionError
from .models import (
    BroadcastResult,
    CommandResult,
    ExecutionTarget,
    ResolutionResult,
    ResolutionStrategy,
)
from .utils import run_command

logger = logging.getLogger("scale.remote")

# pdsh reports per-host failures on stderr as "pdsh@<self>: <host>: <message>"
PDSH_ERROR_RE = re.compile(r'^pdsh@[^:]*:\s*([^:\s]+):\s*(.*)$')
EXIT_CODE_RE = re.compile(r'exit(?:ed with exit)? code (\d+)')

# only the first local copy that exists is run
LOCAL_STRATEGIES = (ResolutionStrategy.LOCAL_NAME, ResolutionStrategy.LOCAL_PATH)


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


class RemoteExecutor:
    """Runs commands on cluster nodes."""

    def __init__(
        self,
        pool,
        transport: str = 'pdsh',
        max_workers: int = 10,
        runner: Callable[..., CommandResult] = run_command,
        which: Callable[[str], Optional[str]] = shutil.which,
        is_executable: Callable[[str], bool] = _is_executable,
    ):
        """
        Args:
            pool: SSH connection pool with ``execute`` and ``put``
            transport: Broadcast transport, ``pdsh`` or ``threads``
            max_workers: Upper bound on concurrent connections for ``threads``
            runner: Local command runner
            which: Lookup of a command on the local search path
            is_executable: Test for a local executable file
        """
        self.pool = pool
        self.transport = transport
        self.max_workers = max_workers
        self.runner = runner
        self.which = which
        self.is_executable = is_executable

    def run_one(self, node: str, command: str) -> CommandResult:
        """Run a shell command on one node and wait for it."""
        rc, out, err = self.pool.execute(node, command)
        return CommandResult(returncode=rc, stdout=out, stderr=err)

    def copy_file(self, node: str, local_path: str, remote_path: str) -> CommandResult:
        """Copy a local file to a node."""
        rc, out, err = self.pool.put(node, local_path, remote_path)
        return CommandResult(returncode=rc, stdout=out, stderr=err)

    def run_on_all(self, nodes: Sequence[str], command: str) -> BroadcastResult:
        """Run a command on every node concurrently.

        Individual node failures are reported and returned, never raised.

        Raises:
            BroadcastUnavailableError: If the parallel shell itself cannot run
        """
        output.step(f"[all nodes] {command}")
        if self.transport == 'pdsh':
            result = self._broadcast_pdsh(nodes, command)
        else:
            result = self._broadcast_threads(nodes, command)
        for node in result.failed_nodes:
            res = result.results[node]
            output.warn(f"{node}: command failed (exit code {res.returncode})")
            logger.warning(f"Broadcast to {node} failed: {res.stderr.strip()}")
        return result

    def _broadcast_pdsh(self, nodes: Sequence[str], command: str) -> BroadcastResult:
        cmd = ['pdsh', '-R', 'ssh', '-w', ','.join(nodes), command]
        res = self.runner(cmd, capture=True)
        if res.returncode in (126, 127):
            raise BroadcastUnavailableError(f"pdsh could not be run: {res.stderr.strip()}")

        stdout: Dict[str, List[str]] = {n: [] for n in nodes}
        stderr: Dict[str, List[str]] = {n: [] for n in nodes}
        codes: Dict[str, int] = {n: 0 for n in nodes}

        for line in res.stdout.splitlines():
            output.info(line)
            host, sep, text = line.partition(': ')
            if sep and host in stdout:
                stdout[host].append(text)

        for line in res.stderr.splitlines():
            match = PDSH_ERROR_RE.match(line)
            if match and match.group(1) in codes:
                host, message = match.groups()
                code = EXIT_CODE_RE.search(message)
                codes[host] = int(code.group(1)) if code else 255
                stderr[host].append(message)
                continue
            output.warn(line)
            host, sep, text = line.partition(': ')
            if sep and host in stderr:
                stderr[host].append(text)

        # pdsh failed without blaming any node, so nothing was dispatched
        if res.returncode != 0 and not any(codes.values()):
            raise BroadcastUnavailableError(
                f"pdsh failed (exit code {res.returncode}): {res.stderr.strip()}")

        return BroadcastResult(results={
            n: CommandResult(codes[n], '\n'.join(stdout[n]), '\n'.join(stderr[n]))
            for n in nodes
        })

    def _broadcast_threads(self, nodes: Sequence[str], command: str) -> BroadcastResult:
        result = BroadcastResult()
        if not nodes:
            return result
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(nodes))) as executor:
            future_to_node = {executor.submit(self.run_one, node, command): node for node in nodes}
            for future in as_completed(future_to_node):
                node = future_to_node[future]
                res = future.result()
                result.results[node] = res
                for line in res.output.splitlines():
                    output.info(f"{node}: {line}")
        return result

    def resolve_and_run(self, target: ExecutionTarget, command_name: str,
                        args: Sequence[str] = ()) -> ResolutionResult:
        """Run a read-only command from the first location that succeeds.

        Strategies are tried in the order given by ``target``; once one
        succeeds no later strategy is attempted.

        Raises:
            CommandResolutionError: If every strategy failed
        """
        tried: List[ResolutionStrategy] = []
        last: Optional[CommandResult] = None
        ran_locally = False
        for strategy in target.strategies:
            if ran_locally and strategy in LOCAL_STRATEGIES:
                continue
            tried.append(strategy)
            result = self._attempt(strategy, target, command_name, list(args))
            if result is None:
                logger.debug(f"{command_name}: {strategy.value} not available")
                continue
            if strategy in LOCAL_STRATEGIES:
                ran_locally = True
            if result.ok:
                logger.debug(f"{command_name}: resolved via {strategy.value}")
                return ResolutionResult(result=result, strategy=strategy, tried=tried)
            logger.debug(f"{command_name}: {strategy.value} exited with {result.returncode}")
            last = result
        raise CommandResolutionError(
            shlex.join([command_name, *args]),
            [s.value for s in tried],
            last.output if last else 'command not found locally or on ' + target.node,
        )

    def _attempt(self, strategy: ResolutionStrategy, target: ExecutionTarget,
                 command_name: str, args: List[str]) -> Optional[CommandResult]:
        fixed_path = f"{target.bin_dir}/{command_name}"
        if strategy is ResolutionStrategy.LOCAL_NAME:
            if not self.which(command_name):
                return None
            return self.runner([command_name, *args], capture=True)
        if strategy is ResolutionStrategy.LOCAL_PATH:
            if not self.is_executable(fixed_path):
                return None
            return self.runner([fixed_path, *args], capture=True)
        if strategy is ResolutionStrategy.REMOTE_NAME:
            command = f"PATH=$PATH:{shlex.quote(target.bin_dir)} {shlex.join([command_name, *args])}"
            return self.run_one(target.node, command)
        return self.run_one(target.node, shlex.join([fixed_path, *args]))
