"""
Thin wrapper around subprocess for running external commands such as kubectl.
"""

import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass(frozen=True)
class Command:
    name: str
    args: List[str] = field(default_factory=list)
    timeout: Optional[float] = None

    def cli(self) -> str:
        """The command line as it would be typed in a shell."""
        return ' '.join(shlex.quote(a) for a in [self.name, *self.args])


@dataclass(frozen=True)
class CommandResult:
    rc: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.rc == 0

    @property
    def output(self) -> str:
        return '\n'.join(s for s in (self.stdout, self.stderr) if s)


CommandRunner = Callable[[Command], CommandResult]


def run_command(cmd: Command) -> CommandResult:
    """Run a command to completion and capture its output.

    Raises OSError if the binary cannot be started and
    subprocess.TimeoutExpired if the command outlives ``cmd.timeout``.
    """
    p = subprocess.run(
        [cmd.name, *cmd.args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=cmd.timeout,
    )
    return CommandResult(rc=p.returncode, stdout=p.stdout.strip(), stderr=p.stderr.strip())
