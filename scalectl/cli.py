import logging
from pathlib import Path
from typing import Optional

import typer

from scalectl.config import Config
from scalectl.logging import setup_logging
from scalectl.modules.ssh import ConnectionPool
from scalectl.modules.scale import output
from scalectl.modules.scale.config import DeployConfig
from scalectl.modules.scale.exceptions import ScaleDeployError
from scalectl.modules.scale.gate import PhaseGate
from scalectl.modules.scale.health import run_health_check
from scalectl.modules.scale.models import ExecutionTarget, PhaseId, RunOutcome, RunState
from scalectl.modules.scale.phases import ScaleDeployment
from scalectl.modules.scale.preflight import check_prereqs, check_root
from scalectl.modules.scale.remote import RemoteExecutor

logger = logging.getLogger("scalectl")

EPILOG = """
Phases (A–J):
  A  Local preparation            – Enables CodeReady repo; installs unzip & pdsh.
  B  Remote prerequisites         – Installs kernel headers & dev pkgs; stops firewalld.
  C  Verify installer             – md5sum check in unpacked directory.
  D  Silent install (master)      – Runs silent installer locally.
  E  Cluster skeleton setup       – spectrumscale setup -s <MGMT_IP> [-c <NAME>].
  F  Add nodes                    – Adds quorum/manager & GUI nodes; skips on error.
  G  Define NSDs                  – Creates NSDs per mapping; skips existing ones.
  H  Install cluster packages     – Disables CallHome; runs install -pr and install.
  I  Distribute nsddevices files  – Generates per-node nsddevices scripts and copies them.
  J  Create GUI admin             – Adds the GUI admin user on the GUI node.

Examples:
  unattended full install : sudo scalectl -y
  resume from phase H     : sudo scalectl -s H
  health-check only       : sudo scalectl --hc
"""

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def parse_start_phase(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return PhaseId.parse(value).value
    except ValueError as e:
        raise typer.BadParameter(str(e))


def confirm_prompt(message: str) -> bool:
    return typer.confirm(message, default=False)


def build_remote(config: DeployConfig) -> RemoteExecutor:
    pool = ConnectionPool(
        username=config.ssh.user,
        key_path=config.ssh.key_path,
        port=config.ssh.port,
        timeout=config.ssh.connect_timeout,
    )
    return RemoteExecutor(pool, transport=config.broadcast.transport,
                          max_workers=config.broadcast.max_workers)


@app.command(epilog=EPILOG)
def main(
    yes: bool = typer.Option(False, "--yes", "-y", help='Non-interactive mode (answer "yes" to all prompts).'),
    cluster: Optional[str] = typer.Option(None, "--cluster", "-c", metavar="NAME",
                                          help="Explicit GPFS cluster name."),
    start_phase: Optional[str] = typer.Option(None, "--start-phase", "-s", metavar="LETTER",
                                              callback=parse_start_phase,
                                              help="Begin execution from phase LETTER (A-J)."),
    hc: bool = typer.Option(False, "--hc", help="Run health-check only (mmlscluster … mmlsnsd)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Deployment configuration file (YAML)."),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Guided, idempotent deployment of an IBM Storage Scale cluster."""
    try:
        config = DeployConfig.load(config_path or Config.CONFIG_PATH)
    except ScaleDeployError as e:
        output.error(str(e))
        raise typer.Exit(1)

    setup_logging(config.logging.level, debug=debug, log_file=config.logging.file,
                  max_size_mb=config.logging.max_size_mb, backup_count=config.logging.backup_count)
    logger.debug("Debug mode enabled")

    remote = build_remote(config)
    try:
        if hc:
            target = ExecutionTarget(node=config.health_node, bin_dir=config.health.bin_dir)
            run_health_check(remote, target)
            return

        check_root()
        check_prereqs(config)

        state = RunState(
            start_phase=PhaseId(start_phase) if start_phase else None,
            assume_yes=yes,
            cluster_name=cluster,
        )
        gate = PhaseGate(state, prompt=confirm_prompt)
        outcome = ScaleDeployment(config, state, remote).run(gate)
        if outcome is RunOutcome.DECLINED:
            output.info("Stopped at operator request.")
    except ScaleDeployError as e:
        logger.debug("Fatal error", exc_info=True)
        output.error(str(e))
        raise typer.Exit(1)
    finally:
        remote.pool.close_all()


if __name__ == "__main__":
    app()
