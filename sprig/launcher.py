"""
Sprig executable launcher.

A command marked executable hands its remaining tokens to a separate program
named after its path: "git remote add" runs "git-remote-add". The program is
looked up next to the running script first, then on PATH.

Launcher is the default collaborator; Command.parse(launcher=...) accepts any
object with a launch(command, tokens) -> int method.
"""
import logging
import os.path
import shutil
import subprocess
import sys

from .faults import ExecutableNotFoundError, debugging

logger = logging.getLogger(__name__)


class Launcher:
    """
    Run a sub-command executable and return its exit status.

    Candidates, in order
    - <script dir>/<name>, <script dir>/<name>.py
    - <name> resolved through PATH (shutil.which)

    where <name> joins the command path with "-" (the root name loses any
    ".py" suffix). Python candidates run through the current interpreter.
    """

    def __init__(self, directory=None):
        self.directory = directory

    def executable(self, command, /):
        main, *names = command.path.split(" ")
        return "-".join((os.path.splitext(main)[0], *names))

    def candidates(self, command, /):
        executable = self.executable(command)
        directory = self.directory or os.path.dirname(os.path.abspath(sys.argv[0]))
        candidates = [
            os.path.join(directory, executable),
            os.path.join(directory, executable + ".py"),
        ]
        if (found := shutil.which(executable)) and found not in candidates:
            candidates.append(found)
        return candidates

    def launch(self, command, tokens, /):
        candidates = self.candidates(command)
        for candidate in candidates:
            if not os.path.isfile(candidate):
                continue
            argv = [sys.executable, candidate] if candidate.endswith(".py") else [candidate]
            logger.debug("launching %s with %d token(s)", candidate, len(tokens))
            process = subprocess.run(
                [*argv, *tokens],
                env=os.environ | {"SPRIG_DEBUG": "true" if debugging() else "false"},
                check=False
            )
            return process.returncode

        raise ExecutableNotFoundError(
            "sub-command executable not found: %s" % self.executable(command),
            input=self.executable(command),
            candidates=tuple(candidates),
            hint="tried %s" % ", ".join(candidates)
        )


__all__ = (
    "Launcher",
)
