"""CLI command modules for submitsync."""

from submitsync.command.check import CheckCommand
from submitsync.command.submit import SubmitCommand

__all__ = ["CheckCommand", "SubmitCommand"]
