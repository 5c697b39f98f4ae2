"""
runner.py: building and running lxc command lines
"""
import abc
import logging
import subprocess
from typing import List, Optional

from ..errors import StartFailure, ExecutionFailure

logger = logging.getLogger(__name__)


class LxcCommand:
    """
    LxcCommand: a complete lxc command line, optionally scoped to a project
    """

    def __init__(self, args: List[str], project: Optional[str] = None,
                 binary: str = "lxc"):
        self.binary = binary
        self.project = project
        self.args = list(args)

    def scoped_args(self) -> List[str]:
        """Arguments passed to the binary, including the project scope."""
        if self.project is not None:
            return ["--project", self.project] + self.args
        return list(self.args)

    def argv(self) -> List[str]:
        return [self.binary] + self.scoped_args()

    def __repr__(self):
        return f"LxcCommand({self.argv()!r})"


class LxcRunner(abc.ABC):
    """
    LxcRunner: a way to run lxc commands
    """

    @abc.abstractmethod
    def run(self, cmd: LxcCommand) -> bytes:
        """
        Run the command once and return its standard output.
        Raises StartFailure or ExecutionFailure.
        """
        pass


class LxcCommandRunner(LxcRunner):
    """
    LxcCommandRunner: runs lxc as a subprocess, buffering all of its output
    """

    def run(self, cmd: LxcCommand) -> bytes:
        argv = cmd.argv()
        logger.debug(f"running lxc with: {argv[1:]}")

        try:
            result = subprocess.run(argv, capture_output=True, check=False)
        except OSError as e:
            raise StartFailure(e) from e

        if result.returncode != 0:
            # negative return codes mean the process was killed by a signal
            exit_code = result.returncode if result.returncode > 0 else 255
            raise ExecutionFailure(
                exit_code, result.stderr.decode("utf-8", errors="replace").strip()
            )
        return result.stdout
