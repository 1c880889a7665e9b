import pytest

from scalectl.modules.scale.config import DeployConfig
from scalectl.modules.scale.exceptions import PreconditionError
from scalectl.modules.scale.preflight import check_prereqs, check_root


def test_check_root():
    check_root(geteuid=lambda: 0)
    with pytest.raises(PreconditionError):
        check_root(geteuid=lambda: 1000)


def test_missing_unzip_is_fatal():
    with pytest.raises(PreconditionError, match="unzip"):
        check_prereqs(DeployConfig(), which=lambda n: None, is_executable=lambda p: True)


def test_missing_pdsh_only_warns(capsys):
    check_prereqs(DeployConfig(), which=lambda n: n if n == "unzip" else None,
                  is_executable=lambda p: True)

    assert "Will install pdsh in Phase A" in capsys.readouterr().out


def test_missing_toolkit_is_fatal():
    with pytest.raises(PreconditionError, match="Toolkit not found"):
        check_prereqs(DeployConfig(), which=lambda n: n, is_executable=lambda p: False)
