#!/usr/bin/env python3
"""Submitsync CLI - fast-forward submission with external mirror sync."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from submitsync.command.check import CheckCommand
from submitsync.command.submit import SubmitCommand
from submitsync.core.config import State
from submitsync.core.log import logger


class CliState(State):
    """Submit approved changes to a branch by fast-forwarding it.

    Branches configured as fast_forward_sync are also mirrored to an
    external version control system: every new commit is handed to
    the sync hook, oldest first, and only commits the hook accepts
    reach the branch.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.git.branch value)
    2. submitsync.yaml in the current directory, then --include files
    3. .env file for secrets
    4. Environment variables
       (SUBMITSYNC_CONFIG__GIT__BRANCH=value)
    """

    submit: CliSubCommand[SubmitCommand]
    check: CliSubCommand[CheckCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Close log sinks on exit, even when the workflow raises
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
