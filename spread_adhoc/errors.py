"""
errors.py: exceptions raised by the allocator and its backends
"""


class AllocatorError(Exception):
    """
    AllocatorError: base class for all recoverable allocator failures
    """


class ConfigError(AllocatorError):
    """Configuration document or settings cannot be used."""

    def __init__(self, msg: str):
        super().__init__(f"cannot load configuration: {msg}")


class NotFoundError(AllocatorError):
    """A system, setup list, instance or address is not known."""


class RunnerError(AllocatorError):
    """
    RunnerError: base class for failures running the lxc command
    """


class StartFailure(RunnerError):
    """The lxc process could not be started at all."""

    def __init__(self, cause: OSError):
        super().__init__(f"cannot start lxc: {cause}")
        self.cause = cause


class ExecutionFailure(RunnerError):
    """The lxc process ran and exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str):
        super().__init__(
            f"lxc command exited with status {exit_code}, stderr:\n{stderr}"
        )
        self.exit_code = exit_code
        self.stderr = stderr


class BackendError(AllocatorError):
    """
    BackendError: failure of one stage of a backend operation
    """

    prefix = "backend failure"

    def __init__(self, detail: str = ""):
        msg = f"{self.prefix}: {detail}" if detail else self.prefix
        super().__init__(msg)
        self.detail = detail


class AddProjectError(BackendError):
    prefix = "cannot add project"


class ListNodesError(BackendError):
    prefix = "cannot list nodes"


class ListProjectsError(BackendError):
    prefix = "cannot list projects"


class NodeNotFoundError(BackendError):
    prefix = "cannot find node"


class DeleteNodeError(BackendError):
    prefix = "cannot delete node"


class AddressTimeoutError(BackendError):
    prefix = "cannot obtain address"


class ProvisionError(BackendError):
    prefix = "cannot provision node"


class AllocateError(AllocatorError):
    def __init__(self, cause):
        super().__init__(f"cannot allocate system: {cause}")


class DeallocateError(AllocatorError):
    def __init__(self, cause):
        super().__init__(f"cannot deallocate system: {cause}")


class ExecutorError(AllocatorError):
    def __init__(self, cause):
        super().__init__(f"cannot execute operation: {cause}")


class BackendContractError(RuntimeError):
    """
    The backend returned output that does not follow its documented JSON
    format. Not an AllocatorError: this is not handled as a runtime condition.
    """
