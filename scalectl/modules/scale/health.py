"""Storage Scale cluster health report."""
import logging
import shlex
from typing import List, NamedTuple, Tuple

from . import output
from .exceptions import CommandResolutionError
from .models import ExecutionTarget
from .remote import RemoteExecutor

logger = logging.getLogger("scale.health")


class HealthQuery(NamedTuple):
    command: str
    args: Tuple[str, ...] = ()
    best_effort: bool = False

    @property
    def label(self) -> str:
        return shlex.join([self.command, *self.args])


HEALTH_QUERIES: List[HealthQuery] = [
    HealthQuery('mmlscluster'),
    HealthQuery('mmgetstate', ('-a',)),
    HealthQuery('mmhealth', ('cluster', 'show'), best_effort=True),
    HealthQuery('mmhealth', ('node', 'show', '--extended'), best_effort=True),
    HealthQuery('mmlsnsd', ('-v',)),
]


def run_health_check(remote: RemoteExecutor, target: ExecutionTarget,
                     queries: List[HealthQuery] = HEALTH_QUERIES) -> List[str]:
    """Print a health report.

    Args:
        remote: Executor used to resolve each query
        target: Where queries may run when not installed locally
        queries: Queries to run, in order

    Returns:
        Labels of best-effort queries that failed

    Raises:
        CommandResolutionError: If a required query fails
    """
    output.info(f"===== GPFS Cluster Health Check (executed via {target.node} if needed) =====")
    failed = []
    for query in queries:
        output.info()
        output.info(f"--- {query.label} ---")
        try:
            resolved = remote.resolve_and_run(target, query.command, query.args)
        except CommandResolutionError as e:
            if not query.best_effort:
                raise
            if e.output:
                output.info(e.output)
            output.warn(f"[warn] {query.label} failed; continuing")
            logger.warning(f"Best-effort query {query.label} failed via {', '.join(e.tried)}")
            failed.append(query.label)
            continue
        if resolved.result.stdout:
            output.info(resolved.result.stdout.rstrip())
    output.info("===== End health check =====")
    return failed
