"""Commit graph access."""

from submitsync.graph.base import CommitGraph, RevisionWalk
from submitsync.graph.git import GitGraph
from submitsync.graph.memory import MemoryGraph

__all__ = ["CommitGraph", "GitGraph", "MemoryGraph", "RevisionWalk"]
