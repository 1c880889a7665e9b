"""
Data models for Storage Scale cluster deployment.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional


class PhaseId(str, Enum):
    """Phase identifiers, ordered alphabetically."""
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'
    E = 'E'
    F = 'F'
    G = 'G'
    H = 'H'
    I = 'I'
    J = 'J'

    @classmethod
    def parse(cls, letter: str) -> 'PhaseId':
        """Parse a phase letter, case-insensitively."""
        try:
            return cls(letter.strip().upper())
        except ValueError:
            valid = ''.join(p.value for p in cls)
            raise ValueError(f"Invalid phase letter {letter!r} (expected one of {valid[0]}-{valid[-1]})")


class GateDecision(str, Enum):
    """What the phase gate decided for a phase."""
    SKIP = 'skip'
    PROCEED_AFTER_CONFIRMATION = 'proceed_after_confirmation'
    PROCEED_UNATTENDED = 'proceed_unattended'


class Confirmation(str, Enum):
    """Outcome of asking whether a phase may run."""
    SKIP = 'skip'
    RUN = 'run'
    ABORT = 'abort'


class PhaseStatus(str, Enum):
    """Lifecycle of a single phase within one run."""
    NOT_STARTED = 'not_started'
    SKIPPED = 'skipped'
    AWAITING_CONFIRMATION = 'awaiting_confirmation'
    RUNNING = 'running'
    COMPLETED = 'completed'
    DECLINED = 'declined'


class RunOutcome(str, Enum):
    """How a full phase run ended."""
    COMPLETED = 'completed'
    DECLINED = 'declined'


class ActionOutcome(str, Enum):
    """Result of an idempotent toolkit action."""
    OK = 'ok'
    SKIPPED = 'skipped'


class ResolutionStrategy(str, Enum):
    """Places a read-only diagnostic command may be run from, in order."""
    LOCAL_NAME = 'local-name'
    LOCAL_PATH = 'local-path'
    REMOTE_NAME = 'remote-name'
    REMOTE_PATH = 'remote-path'


@dataclass
class CommandResult:
    """Exit status and captured output of a command."""
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined output, stdout first."""
        return '\n'.join(s for s in (self.stdout.rstrip(), self.stderr.rstrip()) if s)


@dataclass(frozen=True)
class NodeRoles:
    """Role flags passed to the toolkit when a node is registered."""
    admin: bool = True
    manager: bool = False
    quorum: bool = False
    gui: bool = False


@dataclass
class Node:
    """A cluster node, optionally backing one storage device."""
    name: str
    quorum: bool = False
    manager: bool = False
    gui: bool = False
    device: Optional[str] = None
    failure_group: Optional[int] = None

    @property
    def is_storage(self) -> bool:
        return self.device is not None

    @property
    def roles(self) -> NodeRoles:
        return NodeRoles(manager=self.manager, quorum=self.quorum, gui=self.gui)


@dataclass(frozen=True)
class NsdEntry:
    """One row of the NSD mapping."""
    node: str
    device: str
    failure_group: int


@dataclass
class RunState:
    """Mutable state for one deployment run.

    ``start_phase`` is the resume cursor; the phase gate clears it once a
    phase at or after it is admitted.
    """
    start_phase: Optional[PhaseId] = None
    assume_yes: bool = False
    cluster_name: Optional[str] = None


@dataclass
class ExecutionTarget:
    """Where a read-only diagnostic command may be resolved."""
    node: str
    bin_dir: str
    strategies: List[ResolutionStrategy] = field(
        default_factory=lambda: list(ResolutionStrategy)
    )


@dataclass
class ResolutionResult:
    """Successful result of a resolution chain plus the strategies tried."""
    result: CommandResult
    strategy: ResolutionStrategy
    tried: List[ResolutionStrategy] = field(default_factory=list)


@dataclass
class BroadcastResult:
    """Per-node results of a broadcast."""
    results: Dict[str, CommandResult] = field(default_factory=dict)

    @property
    def failed_nodes(self) -> List[str]:
        return [name for name, res in self.results.items() if not res.ok]


@dataclass
class Phase:
    """One step of the deployment sequence."""
    id: PhaseId
    title: str
    description: str
    run: Callable[..., None]
