import os

import pytest

from conftest import FakePool, FakeRunner, TOOLKIT_PATH
from scalectl.modules.scale.config import DeployConfig
from scalectl.modules.scale.exceptions import StepFailedError
from scalectl.modules.scale.gate import PhaseGate
from scalectl.modules.scale.models import CommandResult, PhaseId, PhaseStatus, RunOutcome, RunState
from scalectl.modules.scale.phases import ScaleDeployment, write_nsddevices_script
from scalectl.modules.scale.remote import RemoteExecutor


def never_prompt(message):
    raise AssertionError(f"unexpected prompt: {message}")


def make_deployment(config, runner, pool, state, tmp_path):
    remote = RemoteExecutor(pool, transport='threads', runner=runner)
    return ScaleDeployment(config, state, remote, runner=runner, tmp_root=str(tmp_path))


@pytest.fixture
def installer_dir(tmp_path):
    directory = tmp_path / "installer"
    directory.mkdir()
    (directory / "Storage_Scale_Developer-5.2.3.2-x86_64-Linux-install").write_text("#!/bin/sh\n")
    (directory / "Storage_Scale_Developer-5.2.3.2-x86_64-Linux-install.md5").write_text("abc  x\n")
    return directory


def test_phases_are_ordered_a_to_j(config, runner, pool, tmp_path):
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    assert [p.id for p in deployment.phases] == list(PhaseId)


def test_resume_at_h_unattended(config, runner, pool, tmp_path):
    state = RunState(start_phase=PhaseId.H, assume_yes=True)
    deployment = make_deployment(config, runner, pool, state, tmp_path / "work")
    (tmp_path / "work").mkdir()
    gate = PhaseGate(state, prompt=never_prompt)

    outcome = deployment.run(gate)

    assert outcome is RunOutcome.COMPLETED
    assert runner.toolkit_calls() == [
        ['callhome', 'disable'],
        ['install', '-pr'],
        ['install'],
    ]
    for phase in "ABCDEFG":
        assert gate.status[PhaseId(phase)] is PhaseStatus.SKIPPED
    for phase in "HIJ":
        assert gate.status[PhaseId(phase)] is PhaseStatus.COMPLETED
    # phase I copied one nsddevices script per storage node
    assert len(pool.uploads) == 10
    # phase J created the GUI user on node10
    assert ("node10", "/usr/lpp/mmfs/gui/cli/mkuser secadmin -g SecurityAdmin") in pool.executed


def test_decline_stops_the_run(config, runner, pool, tmp_path):
    answers = iter([True, False])
    state = RunState()
    deployment = make_deployment(config, runner, pool, state, tmp_path)
    gate = PhaseGate(state, prompt=lambda m: next(answers))

    outcome = deployment.run(gate)

    assert outcome is RunOutcome.DECLINED
    # phase A ran; phase B was never started
    assert runner.calls[0][0] == 'subscription-manager'
    assert runner.calls[1][:3] == ['dnf', '-y', 'install']
    assert len(runner.calls) == 2
    assert pool.executed == []
    assert gate.status[PhaseId.B] is PhaseStatus.NOT_STARTED


def test_decline_at_first_prompt_runs_nothing(config, runner, pool, tmp_path):
    state = RunState()
    deployment = make_deployment(config, runner, pool, state, tmp_path)

    outcome = deployment.run(PhaseGate(state, prompt=lambda m: False))

    assert outcome is RunOutcome.DECLINED
    assert runner.calls == []


def test_cluster_setup_uses_name_override(config, runner, pool, tmp_path):
    state = RunState(cluster_name="gpfs-prod")
    deployment = make_deployment(config, runner, pool, state, tmp_path)

    deployment.cluster_setup()

    assert runner.toolkit_calls() == [['setup', '-s', '10.241.128.39', '-c', 'gpfs-prod']]


def test_cluster_setup_failure_is_fatal(config, pool, tmp_path):
    runner = FakeRunner(rules=[([TOOLKIT_PATH, 'setup'], CommandResult(1, "", "bad ip"))])
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    with pytest.raises(StepFailedError):
        deployment.cluster_setup()


def test_add_nodes_registers_quorum_then_managers_then_gui(runner, pool, tmp_path):
    config = DeployConfig(cluster={"nodes": [
        {"name": "n1", "quorum": True, "manager": True},
        {"name": "n2", "manager": True},
        {"name": "n3", "gui": True},
        {"name": "n4", "quorum": True},
    ]})
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.add_nodes()

    assert runner.toolkit_calls() == [
        ['node', 'add', '-a', '-m', '-q', '-n', 'n1'],
        ['node', 'add', '-a', '-q', '-n', 'n4'],
        ['node', 'add', '-a', '-m', '-n', 'n2'],
        ['node', 'add', '-a', '-g', '-n', 'n3'],
        ['node', 'list'],
    ]


def test_define_nsds_continues_past_existing_entries(config, pool, tmp_path, capsys):
    runner = FakeRunner(rules=[
        ([TOOLKIT_PATH, 'nsd', 'add', '-p', 'node3'], CommandResult(1, "", "NSD already defined")),
    ])
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.define_nsds()

    calls = runner.toolkit_calls()
    assert len(calls) == 10
    assert calls[2] == ['nsd', 'add', '-p', 'node3', '/dev/xi_raid5', '-fg', '101']
    assert calls[3] == ['nsd', 'add', '-p', 'node4', '/dev/xi_raid5', '-fg', '102']
    assert "NSD /dev/xi_raid5 on node3 skipped" in capsys.readouterr().out


def test_install_precheck_failure_stops_before_install(config, pool, tmp_path):
    runner = FakeRunner(rules=[([TOOLKIT_PATH, 'install', '-pr'], CommandResult(1))])
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    with pytest.raises(StepFailedError):
        deployment.install_cluster()

    assert runner.toolkit_calls() == [['callhome', 'disable'], ['install', '-pr']]


def test_distribute_nsddevices_removes_temp_dir_despite_copy_failures(config, runner, tmp_path, capsys):
    work = tmp_path / "work"
    work.mkdir()
    pool = FakePool(put=lambda host, l, r: (255, "", "unreachable") if host in ("node2", "node7") else (0, "", ""))
    deployment = make_deployment(config, runner, pool, RunState(), work)

    deployment.distribute_nsddevices()

    assert os.listdir(work) == []
    assert len(pool.uploads) == 10
    chmods = [host for host, cmd in pool.executed if cmd.startswith("chmod +x")]
    assert "node2" not in chmods and "node7" not in chmods
    assert len(chmods) == 8
    assert sum(1 for _, cmd in pool.executed if cmd == "ls -l /var/mmfs/etc/nsddevices") == 10
    assert "Copy of nsddevices to node2 failed" in capsys.readouterr().out


def test_distribute_nsddevices_removes_temp_dir_on_error(config, runner, tmp_path):
    work = tmp_path / "work"
    work.mkdir()

    def explode(host, local, remote):
        raise RuntimeError("transport crashed")

    deployment = make_deployment(config, runner, FakePool(put=explode), RunState(), work)

    with pytest.raises(RuntimeError):
        deployment.distribute_nsddevices()

    assert os.listdir(work) == []


def test_nsddevices_script_prints_device(config, runner, pool, tmp_path):
    script = tmp_path / "nsddevices"

    write_nsddevices_script(script, "/dev/xi_raid5")

    assert script.read_text() == "#!/usr/bin/env bash\necho /dev/xi_raid5\n"
    assert os.access(script, os.X_OK)


def test_uploaded_script_content(config, runner, pool, tmp_path):
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.distribute_nsddevices()

    host, remote_path, content = pool.uploads[0]
    assert host == "node1"
    assert remote_path == "/var/mmfs/etc/nsddevices"
    assert content.endswith("echo /dev/xi_raid5\n")


def test_gui_cli_missing_is_not_fatal(config, runner, tmp_path, capsys):
    pool = FakePool(execute=lambda host, cmd: (1, "", "") if cmd.startswith("test -x") else (0, "", ""))
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.create_gui_admin()

    assert pool.executed == [("node10", "test -x /usr/lpp/mmfs/gui/cli/mkuser")]
    assert "not found on node10" in capsys.readouterr().out


def test_verify_installer_runs_md5sum(runner, pool, tmp_path, installer_dir):
    config = DeployConfig(installer={"directory": str(installer_dir)})
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.verify_installer()
    deployment.silent_install()

    assert runner.calls == [
        ['md5sum', '-c', 'Storage_Scale_Developer-5.2.3.2-x86_64-Linux-install.md5'],
        ['sh', './Storage_Scale_Developer-5.2.3.2-x86_64-Linux-install', '--silent'],
    ]


def test_verify_installer_failure_is_fatal(pool, tmp_path, installer_dir):
    runner = FakeRunner(default=CommandResult(1))
    config = DeployConfig(installer={"directory": str(installer_dir)})
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    with pytest.raises(StepFailedError):
        deployment.verify_installer()


def test_missing_installer_is_fatal(runner, pool, tmp_path):
    config = DeployConfig(installer={"directory": str(tmp_path / "nowhere")})
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    with pytest.raises(StepFailedError):
        deployment.silent_install()
    assert runner.calls == []


def test_remote_prerequisites_broadcast(config, runner, pool, tmp_path):
    deployment = make_deployment(config, runner, pool, RunState(), tmp_path)

    deployment.remote_prerequisites()

    commands = {cmd for _, cmd in pool.executed}
    assert commands == {
        "dnf -y install kernel-headers-5.14.0-427.77.1.el9_4.x86_64 gcc-c++ elfutils elfutils-devel",
        "systemctl stop firewalld",
    }
    assert len(pool.executed) == 20
