"""CLI command modules."""

from . import config, job

__all__ = [
    "config",
    "job",
]
