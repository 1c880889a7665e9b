import pytest

from scalectl.modules.scale.config import DeployConfig
from scalectl.modules.scale.models import CommandResult
from scalectl.modules.scale.remote import RemoteExecutor
from scalectl.modules.scale.toolkit import Toolkit

TOOLKIT_PATH = "/usr/lpp/mmfs/5.2.3.2/ansible-toolkit/spectrumscale"


class FakeRunner:
    """Records local commands; ``rules`` maps an argv prefix to a result."""

    def __init__(self, rules=None, default=None):
        self.calls = []
        self.rules = rules or []
        self.default = default or CommandResult(0)

    def __call__(self, cmd, cwd=None, capture=True):
        self.calls.append(list(cmd))
        for prefix, result in self.rules:
            if list(cmd[:len(prefix)]) == list(prefix):
                return result
        return self.default

    def toolkit_calls(self):
        return [c[1:] for c in self.calls if c[0] == TOOLKIT_PATH]


class FakePool:
    """Stands in for the SSH ConnectionPool."""

    def __init__(self, execute=None, put=None):
        self.executed = []
        self.uploads = []
        self.closed = False
        self._execute = execute or (lambda host, command: (0, '', ''))
        self._put = put or (lambda host, local, remote: (0, '', ''))

    def execute(self, host, command):
        self.executed.append((host, command))
        return self._execute(host, command)

    def put(self, host, localpath, remotepath):
        with open(localpath) as f:
            self.uploads.append((host, remotepath, f.read()))
        return self._put(host, localpath, remotepath)

    def close_all(self):
        self.closed = True


@pytest.fixture
def config():
    return DeployConfig()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def toolkit(runner):
    return Toolkit(TOOLKIT_PATH, runner=runner)


@pytest.fixture
def remote(pool, runner):
    return RemoteExecutor(pool, transport='threads', runner=runner,
                          which=lambda name: None, is_executable=lambda path: False)
