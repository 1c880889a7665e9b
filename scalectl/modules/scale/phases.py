"""Storage Scale deployment phases.

Phases run strictly in order A..J. Each one is admitted by the PhaseGate
before its body runs; declining a prompt ends the whole run.
"""
import logging
import os
import platform
import shlex
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from . import output
from .actions import add_node, add_storage_resource
from .config import DeployConfig
from .exceptions import StepFailedError
from .gate import PhaseGate
from .models import Confirmation, Phase, PhaseId, PhaseStatus, RunOutcome, RunState
from .remote import RemoteExecutor
from .toolkit import Toolkit
from .utils import run_command

logger = logging.getLogger("scale.phases")

NEXT_STEPS = "mmcrcluster, mmcrnsd, mmstartup, mmcrfs"


def write_nsddevices_script(path: Path, device: str) -> None:
    """Write an executable that prints the node's NSD device path."""
    path.write_text(f"#!/usr/bin/env bash\necho {shlex.quote(device)}\n")
    path.chmod(0o755)


class ScaleDeployment:
    """Runs the deployment phases against one cluster."""

    def __init__(
        self,
        config: DeployConfig,
        state: RunState,
        remote: RemoteExecutor,
        toolkit: Optional[Toolkit] = None,
        runner: Callable = run_command,
        tmp_root: Optional[str] = None,
    ):
        self.config = config
        self.state = state
        self.remote = remote
        self.runner = runner
        self.toolkit = toolkit or Toolkit(config.toolkit.path, runner=runner)
        self.tmp_root = tmp_root
        self.cluster_name = state.cluster_name or config.cluster.name

    @property
    def phases(self) -> List[Phase]:
        cfg = self.config
        return [
            Phase(PhaseId.A, "Local preparation",
                  f"Enable {self._codeready_repo()} and install {'/'.join(cfg.installer.local_packages)}.",
                  self.local_preparation),
            Phase(PhaseId.B, "Remote prerequisites",
                  "Install kernel headers & dev pkgs on all nodes; stop firewalld.",
                  self.remote_prerequisites),
            Phase(PhaseId.C, "Verify installer",
                  f"Verify installer MD5 in {cfg.installer.directory}.",
                  self.verify_installer),
            Phase(PhaseId.D, "Silent install",
                  "Run silent installer on master.",
                  self.silent_install),
            Phase(PhaseId.E, "Cluster skeleton setup",
                  f"spectrumscale setup with IP {cfg.cluster.mgmt_ip}.",
                  self.cluster_setup),
            Phase(PhaseId.F, "Add nodes",
                  "Add quorum/manager & GUI nodes.",
                  self.add_nodes),
            Phase(PhaseId.G, "Define NSDs",
                  "Define NSDs (existing ones are skipped).",
                  self.define_nsds),
            Phase(PhaseId.H, "Install cluster packages",
                  "Disable CallHome & run cluster-wide install.",
                  self.install_cluster),
            Phase(PhaseId.I, "Distribute nsddevices files",
                  "Generate & distribute nsddevices to nodes.",
                  self.distribute_nsddevices),
            Phase(PhaseId.J, "Create GUI admin",
                  f"Create GUI user '{cfg.gui.username}' on {self._gui_node() or 'the GUI node'}.",
                  self.create_gui_admin),
        ]

    def run(self, gate: PhaseGate) -> RunOutcome:
        """Run every phase in order, honouring the gate."""
        phases = self.phases
        for index, phase in enumerate(phases):
            confirmation = gate.confirm(phase)
            if confirmation is Confirmation.SKIP:
                continue
            if confirmation is Confirmation.ABORT:
                logger.info(f"Phase {phase.id.value} declined, stopping")
                return RunOutcome.DECLINED

            logger.info(f"Starting phase {phase.id.value}: {phase.title}")
            phase.run()

            if index == len(phases) - 1:
                gate.status[phase.id] = PhaseStatus.COMPLETED
            elif gate.confirm_next(phase) is Confirmation.ABORT:
                logger.info(f"Stopping after phase {phase.id.value}")
                return RunOutcome.DECLINED

        output.info()
        output.success(f"All phases complete. Next: {NEXT_STEPS}.")
        return RunOutcome.COMPLETED

    def _run_local(self, step: str, cmd: List[str], cwd: Optional[str] = None) -> None:
        output.step(shlex.join(cmd))
        result = self.runner(cmd, cwd=cwd, capture=False)
        if not result.ok:
            raise StepFailedError(step, result.returncode, result.stderr.strip())

    def _run_toolkit(self, step: str, cmd: List[str]) -> None:
        result = self.toolkit.run(cmd)
        if not result.ok:
            raise StepFailedError(step, result.returncode, result.stderr.strip())

    def _codeready_repo(self) -> str:
        return self.config.installer.codeready_repo.format(arch=platform.machine())

    def _gui_node(self) -> Optional[str]:
        return next((n.name for n in self.config.nodes if n.gui), None)

    def _installer_files(self, pattern: str) -> List[str]:
        directory = Path(self.config.installer.directory)
        if not directory.is_dir():
            raise StepFailedError("Installer lookup", 1, f"{directory} is not a directory")
        matches = sorted(p.name for p in directory.glob(pattern))
        if not matches:
            raise StepFailedError("Installer lookup", 1, f"no {pattern} in {directory}")
        return matches

    # Phase A
    def local_preparation(self) -> None:
        self._run_local("Enable repository",
                        ['subscription-manager', 'repos', '--enable', self._codeready_repo()])
        self._run_local("Install local packages",
                        ['dnf', '-y', 'install', *self.config.installer.local_packages])

    # Phase B
    def remote_prerequisites(self) -> None:
        installer = self.config.installer
        packages = [f"kernel-headers-{installer.kernel_version}", *installer.remote_packages]
        nodes = self.config.node_names
        self.remote.run_on_all(nodes, shlex.join(['dnf', '-y', 'install', *packages]))
        self.remote.run_on_all(nodes, "systemctl stop firewalld")

    # Phase C
    def verify_installer(self) -> None:
        checksums = self._installer_files(self.config.installer.checksum_glob)
        self._run_local("Installer verification", ['md5sum', '-c', *checksums],
                        cwd=self.config.installer.directory)

    # Phase D
    def silent_install(self) -> None:
        packages = self._installer_files(self.config.installer.package_glob)
        if len(packages) > 1:
            output.warn(f"Several installers found, using {packages[-1]}")
        self._run_local("Silent install", ['sh', f"./{packages[-1]}", '--silent'],
                        cwd=self.config.installer.directory)

    # Phase E
    def cluster_setup(self) -> None:
        self._run_toolkit("Cluster setup",
                          self.toolkit.setup_command(self.config.cluster.mgmt_ip, self.cluster_name))

    # Phase F
    def add_nodes(self) -> None:
        nodes = self.config.nodes
        ordered = (
            [n for n in nodes if n.quorum]
            + [n for n in nodes if n.manager and not n.quorum]
            + [n for n in nodes if n.gui and not (n.manager or n.quorum)]
        )
        for node in ordered:
            add_node(self.toolkit, node.roles, node.name)
        listing = self.toolkit.run(self.toolkit.node_list_command())
        if not listing.ok:
            output.warn(f"node list failed (exit code {listing.returncode})")

    # Phase G
    def define_nsds(self) -> None:
        for entry in self.config.nsd_mapping:
            add_storage_resource(self.toolkit, entry.node, entry.device, entry.failure_group)

    # Phase H
    def install_cluster(self) -> None:
        self._run_toolkit("CallHome disable", self.toolkit.callhome_disable_command())
        self._run_toolkit("Install precheck", self.toolkit.install_command(precheck=True))
        self._run_toolkit("Cluster install", self.toolkit.install_command())

    # Phase I
    def distribute_nsddevices(self) -> None:
        remote_path = self.config.nsddevices_path
        with tempfile.TemporaryDirectory(prefix="nsddevices-", dir=self.tmp_root) as tmpdir:
            for entry in self.config.nsd_mapping:
                script = Path(tmpdir) / f"nsddevices_{entry.node}"
                write_nsddevices_script(script, entry.device)
                output.step(f"scp {script} {entry.node}:{remote_path}")
                copied = self.remote.copy_file(entry.node, os.fspath(script), remote_path)
                if not copied.ok:
                    output.warn(f"Copy of nsddevices to {entry.node} failed: {copied.stderr.strip()}")
                    continue
                chmod = self.remote.run_one(entry.node, f"chmod +x {shlex.quote(remote_path)}")
                if not chmod.ok:
                    output.warn(f"chmod of nsddevices on {entry.node} failed: {chmod.output}")
        self.remote.run_on_all(self.config.node_names, f"ls -l {shlex.quote(remote_path)}")

    # Phase J
    def create_gui_admin(self) -> None:
        gui = self.config.gui
        node = self._gui_node()
        if node is None:
            output.warn("No GUI node configured; skipping GUI user creation.")
            return
        check = self.remote.run_one(node, f"test -x {shlex.quote(gui.mkuser)}")
        if not check.ok:
            output.warn(f"GUI CLI ({gui.mkuser}) not found on {node}. Install GUI packages first.")
            return
        result = self.remote.run_one(node, shlex.join([gui.mkuser, gui.username, '-g', gui.group]))
        if result.stdout.strip():
            output.info(result.stdout.rstrip())
        if not result.ok:
            raise StepFailedError(f"GUI user creation on {node}", result.returncode, result.output)
        output.success(f"GUI user '{gui.username}' created on {node}.")
