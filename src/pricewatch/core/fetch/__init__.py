"""Fetch utilities - pacing, jitter, retries."""

from .retries import RetryConfig, retry_async
from .throttling import Pacer, PacingPolicy, PacingStats, add_jitter

__all__ = [
    "Pacer",
    "PacingPolicy",
    "PacingStats",
    "RetryConfig",
    "add_jitter",
    "retry_async",
]
