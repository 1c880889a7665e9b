"""
Storage Scale Cluster Deployment Module

Guided, resumable deployment of an IBM Storage Scale cluster:

- Ten ordered phases (A..J) with confirmation prompts or unattended mode
- Resume from any phase
- Idempotent node and NSD registration
- Parallel broadcast to all nodes via pdsh or SSH threads
- Standalone health report with local/remote command resolution
"""

from .models import (
    ActionOutcome,
    Confirmation,
    ExecutionTarget,
    GateDecision,
    Node,
    NsdEntry,
    Phase,
    PhaseId,
    PhaseStatus,
    ResolutionStrategy,
    RunOutcome,
    RunState,
)
from .config import DeployConfig, DEFAULT_CONFIG_PATHS
from .exceptions import (
    BroadcastUnavailableError,
    CommandResolutionError,
    ConfigurationError,
    PreconditionError,
    ScaleDeployError,
    StepFailedError,
)
from .gate import PhaseGate
from .remote import RemoteExecutor
from .phases import ScaleDeployment
from .health import run_health_check, HEALTH_QUERIES

__all__ = [
    'ActionOutcome',
    'Confirmation',
    'ExecutionTarget',
    'GateDecision',
    'Node',
    'NsdEntry',
    'Phase',
    'PhaseId',
    'PhaseStatus',
    'ResolutionStrategy',
    'RunOutcome',
    'RunState',
    'DeployConfig',
    'DEFAULT_CONFIG_PATHS',
    'BroadcastUnavailableError',
    'CommandResolutionError',
    'ConfigurationError',
    'PreconditionError',
    'ScaleDeployError',
    'StepFailedError',
    'PhaseGate',
    'RemoteExecutor',
    'ScaleDeployment',
    'run_health_check',
    'HEALTH_QUERIES',
]
