import ipaddress

import pytest

from spread_adhoc import cli
from spread_adhoc.errors import NotFoundError, AllocateError, DeallocateError, \
    ExecutionFailure, ProvisionError
from spread_adhoc.models import NodeAllocation

DOC = """
system:
  ubuntu-24.04-64:
    image: ubuntu:24.04
setup: {}
"""


class FakeAllocator:
    instances = []
    failure = None

    def __init__(self, conf=None, backend=None, settings=None):
        self.conf = conf
        self.settings = settings
        self.calls = []
        FakeAllocator.instances.append(self)

    def allocate(self, sysname, user_config):
        self.calls.append(("allocate", sysname, user_config))
        if sysname not in self.conf.system:
            raise NotFoundError(f"system \"{sysname}\" not found in configuration")
        if self.failure is not None:
            raise self.failure
        return NodeAllocation(name="n", addr=ipaddress.IPv4Address("10.22.100.75"))

    def deallocate_by_addr(self, addr):
        self.calls.append(("deallocate_by_addr", addr))
        if addr != "10.22.100.75":
            raise NotFoundError(addr)
        if self.failure is not None:
            raise self.failure

    def deallocate_all(self):
        self.calls.append(("deallocate_all",))
        if self.failure is not None:
            raise self.failure


@pytest.fixture(autouse=True)
def fake_allocator(monkeypatch, tmp_path):
    FakeAllocator.instances = []
    FakeAllocator.failure = None
    monkeypatch.setattr(cli, "Allocator", FakeAllocator)
    monkeypatch.chdir(tmp_path)
    return FakeAllocator


@pytest.fixture
def spread_project(tmp_path):
    (tmp_path / "spread.yaml").write_text("project: foo\n")
    (tmp_path / "spread-lxd.yaml").write_text(DOC)
    return tmp_path


class TestAllocate:
    def test_prints_address(self, spread_project, capsys):
        assert cli.main(["allocate", "ubuntu-24.04-64", "root", "pw"]) == 0
        out = capsys.readouterr().out
        assert out == "10.22.100.75:22\n"
        _, sysname, access = FakeAllocator.instances[0].calls[0]
        assert sysname == "ubuntu-24.04-64"
        assert (access.user, access.password) == ("root", "pw")

    def test_unknown_system(self, spread_project, capsys):
        assert cli.main(["allocate", "nope", "root", "pw"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "not found" in captured.err

    def test_backend_failure_message(self, spread_project, capsys):
        FakeAllocator.failure = AllocateError(ProvisionError("exit status 2"))
        assert cli.main(["allocate", "ubuntu-24.04-64", "root", "pw"]) == 1
        err = capsys.readouterr().err
        assert "cannot allocate system: cannot provision node: exit status 2" in err
        assert err.count("cannot allocate") == 1

    def test_no_spread_yaml(self, capsys):
        assert cli.main(["allocate", "ubuntu-24.04-64", "root", "pw"]) == 1
        assert FakeAllocator.instances == []

    def test_missing_arguments(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(["allocate", "ubuntu-24.04-64"])
        assert exc.value.code == 2

    def test_settings_from_env(self, spread_project, monkeypatch):
        monkeypatch.setenv("SPREAD_ADHOC_PROJECT", "other")
        cli.main(["allocate", "ubuntu-24.04-64", "root", "pw"])
        assert FakeAllocator.instances[0].settings.project == "other"


class TestDeallocate:
    def test_deallocate(self):
        assert cli.main(["deallocate", "10.22.100.75:22"]) == 0
        assert FakeAllocator.instances[0].calls == [("deallocate_by_addr", "10.22.100.75")]

    @pytest.mark.parametrize("addr", ["10.22.100.75", "a:b:c"])
    def test_invalid_address(self, addr, capsys):
        assert cli.main(["deallocate", addr]) == 1
        assert "expected <addr>:<port>" in capsys.readouterr().err
        assert FakeAllocator.instances == []

    def test_not_found(self, capsys):
        assert cli.main(["deallocate", "10.0.0.1:22"]) == 1
        assert "no running node with address 10.0.0.1" in capsys.readouterr().err

    def test_backend_failure_message(self, capsys):
        FakeAllocator.failure = DeallocateError(ExecutionFailure(1, "denied"))
        assert cli.main(["deallocate", "10.22.100.75:22"]) == 1
        err = capsys.readouterr().err
        assert "cannot deallocate system: lxc command exited with status 1" in err
        assert err.count("cannot deallocate") == 1


class TestCleanup:
    def test_cleanup(self):
        assert cli.main(["cleanup"]) == 0
        assert FakeAllocator.instances[0].calls == [("deallocate_all",)]

    def test_failure_message(self, capsys):
        FakeAllocator.failure = DeallocateError(ExecutionFailure(1, "busy"))
        assert cli.main(["cleanup"]) == 1
        err = capsys.readouterr().err
        assert err.count("cannot deallocate system") == 1
        assert "busy" in err
