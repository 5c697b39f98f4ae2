import json

import pytest

from spread_adhoc.app_config import AllocatorSettings
from spread_adhoc.backends.lxd import LxdCliBackend
from spread_adhoc.backends.runner import LxcRunner


class FakeRunner(LxcRunner):
    """Records the arguments of each command and replays canned results."""

    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    def run(self, cmd):
        call = cmd.scoped_args()
        if not self.results:
            raise AssertionError(f"expected mock result for call {call}")
        self.calls.append(call)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def instance_json(name, status="Running", network=None):
    return {
        "name": name,
        "status": status,
        "state": {"network": network} if status == "Running" else None,
    }


def iface(*addresses):
    return {"addresses": [{"family": f, "address": a} for f, a in addresses]}


def listing(*instances) -> bytes:
    return json.dumps(list(instances)).encode()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ["SPREAD_ADHOC_LXC", "SPREAD_ADHOC_PROJECT", "SPREAD_ADHOC_POLL_INTERVAL",
                "SPREAD_ADHOC_ADDRESS_TIMEOUT", "SPREAD_ADHOC_LOG_LEVEL"]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def settings():
    return AllocatorSettings(poll_interval=0.5, address_timeout=2.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_backend(settings, clock):
    def _make(*results):
        runner = FakeRunner(results)
        backend = LxdCliBackend(runner=runner, settings=settings,
                                clock=clock, sleep=clock.sleep)
        return backend, runner
    return _make
