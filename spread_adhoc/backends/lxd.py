"""
lxd.py: LXD allocator backend driving the `lxc` command line
"""
import ipaddress
import json
import logging
import time
from typing import Callable, List, Optional

from ..app_config import AllocatorSettings
from ..errors import AllocatorError, RunnerError, NotFoundError, AllocateError, \
    DeallocateError, ExecutorError, BackendContractError, AddProjectError, \
    ListNodesError, ListProjectsError, NodeNotFoundError, DeleteNodeError, \
    AddressTimeoutError, ProvisionError
from ..models import Instance, NodeAllocation
from .base import AllocatorBackend, NodeDetails
from .runner import LxcCommand, LxcRunner, LxcCommandRunner

logger = logging.getLogger(__name__)

# features shared with the default project, so that images and profiles need
# not be set up again
PROJECT_FEATURES = ["features.images=false", "features.profiles=false"]


def lxdfy_name(name: str) -> str:
    """
    lxdfy_name: replaces characters LXD does not accept in instance names
    """
    return name.replace(".", "-").replace(":", "-")


def _parse_json(output: bytes, what: str):
    try:
        return json.loads(output)
    except ValueError as e:
        raise BackendContractError(f"cannot parse {what} JSON: {e}") from e


def parse_instances(output: bytes) -> List[Instance]:
    """
    parse_instances: parses the output of `lxc list --format=json`
    """
    data = _parse_json(output, "instance list")
    try:
        return [Instance.from_json(item) for item in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise BackendContractError(f"unexpected instance list JSON: {e!r}") from e


class LxdCliBackend(AllocatorBackend):
    """
    LxdCliBackend: allocates nodes as ephemeral LXD instances within a
    dedicated project
    """

    def __init__(self, runner: Optional[LxcRunner] = None,
                 settings: Optional[AllocatorSettings] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.runner = runner or LxcCommandRunner()
        self.settings = settings or AllocatorSettings()
        self.clock = clock
        self.sleep = sleep

    @property
    def project(self) -> str:
        return self.settings.project

    def _command(self, args: List[str], scoped: bool = True) -> LxcCommand:
        return LxcCommand(
            args,
            project=self.project if scoped else None,
            binary=self.settings.lxc_command,
        )

    def add_project(self, project: str) -> None:
        args = ["project", "create", project]
        for feature in PROJECT_FEATURES:
            args.extend(["-c", feature])
        try:
            self.runner.run(self._command(args, scoped=False))
        except RunnerError as e:
            raise AddProjectError(str(e)) from e

    def list_projects(self) -> List[str]:
        try:
            output = self.runner.run(
                self._command(["project", "list", "--format=json"], scoped=False)
            )
        except RunnerError as e:
            raise ListProjectsError(str(e)) from e
        try:
            return [p["name"] for p in _parse_json(output, "project list")]
        except (KeyError, TypeError) as e:
            raise BackendContractError(f"unexpected project list JSON: {e!r}") from e

    def list_nodes(self) -> List[Instance]:
        try:
            output = self.runner.run(self._command(["list", "--format=json"]))
        except RunnerError as e:
            raise ListNodesError(str(e)) from e
        return parse_instances(output)

    def list_node_by_name(self, name: str) -> Instance:
        """
        list_node_by_name: returns the instance with exactly this name
        """
        try:
            output = self.runner.run(self._command(["list", "--format=json", name]))
        except RunnerError as e:
            raise ListNodesError(str(e)) from e

        # lxc filters by prefix, only an exact match counts
        for instance in parse_instances(output):
            if instance.name == name:
                return instance
        raise NodeNotFoundError()

    def deallocate_by_name(self, name: str) -> None:
        logger.debug(f"deallocate by name '{name}'")
        try:
            self.runner.run(self._command(["delete", "--force", name]))
        except RunnerError as e:
            raise DeleteNodeError(str(e)) from e

    def wait_for_address(self, name: str) -> ipaddress.IPv4Address:
        """
        wait_for_address: polls the instance until it is running and has an
        IPv4 address on a non-loopback interface
        """
        start = self.clock()

        while True:
            logger.debug("waiting for address")
            self.sleep(self.settings.poll_interval)

            instance = self.list_node_by_name(name)
            if instance.is_running():
                addr = instance.first_ipv4()
                if addr is not None:
                    logger.debug(f"found address {addr}")
                    return addr
            else:
                logger.debug(f"not yet running, in state {instance.status}")

            if self.clock() - start > self.settings.address_timeout:
                raise AddressTimeoutError()

    def provision(self, name: str, steps: List[str]) -> None:
        logger.debug(f"provision {name}")
        for step in steps:
            logger.debug(f"provisioning step:\n{step}")
            try:
                self.runner.run(
                    self._command(["exec", name, "--", "/bin/bash", "-c", step])
                )
            except RunnerError as e:
                raise ProvisionError(str(e)) from e

    def _launch_args(self, node: NodeDetails, name: str) -> List[str]:
        return [
            "launch", "--ephemeral", "--vm",
            "--config", f"limits.memory={node.resources.mem}",
            "--config", f"limits.cpu={node.resources.cpu}",
            "--config", f"security.secureboot={str(node.secure_boot).lower()}",
            "--device", f"root,size={node.resources.size}",
            node.image,
            name,
        ]

    def allocate(self, node: NodeDetails) -> NodeAllocation:
        name = lxdfy_name(node.name)
        logger.info(f"launching {name} from {node.image}")

        try:
            self.runner.run(self._command(self._launch_args(node, name)))
            addr = self.wait_for_address(name)
            self.provision(name, node.provision_steps)
        except AllocatorError as e:
            raise AllocateError(e) from e

        logger.info(f"allocated {name} at {addr}")
        return NodeAllocation(name=name, addr=addr, ssh_port=self.settings.ssh_port)

    def deallocate_by_addr(self, addr: str) -> None:
        logger.debug(f"deallocate by address '{addr}'")

        try:
            nodes = self.list_nodes()
        except AllocatorError as e:
            raise DeallocateError(e) from e

        for instance in nodes:
            if not instance.is_running():
                continue
            if instance.has_address(addr):
                try:
                    self.deallocate_by_name(instance.name)
                except AllocatorError as e:
                    raise DeallocateError(e) from e
                logger.info(f"deallocated {instance.name}")
                return

        raise NotFoundError(addr)

    def deallocate_all(self) -> None:
        try:
            nodes = self.list_nodes()
            logger.debug(f"deallocate {len(nodes)} nodes: {[n.name for n in nodes]}")

            for node in nodes:
                self.deallocate_by_name(node.name)
                logger.info(f"deallocated {node.name}")
        except AllocatorError as e:
            raise DeallocateError(e) from e

    def ensure_project(self, project: str) -> None:
        try:
            found = project in self.list_projects()
            logger.debug(f"project found {found}")
            if not found:
                self.add_project(project)
        except AllocatorError as e:
            raise ExecutorError(e) from e
