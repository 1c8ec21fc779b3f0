"""Subprocess execution for git and the external sync hook, via invoke."""

import contextlib
import io
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from submitsync.core.log import logger

TIMED_OUT = -1


class Runner(Context):
    """invoke.Context whose commands always run with captured output."""

    def kill(self) -> None:
        # invoke sends signal.SIGKILL, which Windows lacks; os.kill()
        # there passes the number to TerminateProcess() as exit code
        if platform.system() != "Windows":
            super().kill()
            return
        pid = self.pid if self.using_pty else self.process.pid
        with contextlib.suppress(ProcessLookupError):
            os.kill(pid, 9)

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        stdin: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run command and return its captured result.

        Args:
            command: Shell command line
            cwd: Directory to run in; the current one when None
            timeout: Seconds before the command is killed
            stdin: Text fed to the command's standard input
            check: Raise on a non-zero exit instead of returning
            env: Variables added on top of os.environ

        Returns:
            invoke.Result; exited is TIMED_OUT (-1) after a timeout

        Raises:
            invoke.UnexpectedExit: If check and the command failed
        """
        options = {
            "hide": True,
            "warn": not check,
            "in_stream": io.StringIO(stdin) if stdin else False,
            "timeout": timeout or None,
            "env": env or {},
        }
        logger.spew("Running command", command=command, cwd=str(cwd or ""))

        directory = self.cd(str(cwd)) if cwd else contextlib.nullcontext()
        try:
            with directory:
                return self.run(command, **options)
        except CommandTimedOut as e:
            logger.warn("Command timed out", command=command, timeout=timeout)
            result = e.result
            result.exited = TIMED_OUT
            return result
