"""
Pacing and jitter utilities.

Jobs scrape one task at a time and pause between products and between
stores so traffic against a store looks less automated.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from pricewatch.core.config.models import JitterMode, ScrapingConfig


SleepFunc = Callable[[float], Awaitable[None]]


def add_jitter(
    delay: float,
    fraction: float = 0.25,
    rng: random.Random | None = None,
) -> float:
    """Perturb a delay by up to +/- fraction of itself.

    Args:
        delay: Base delay in seconds
        fraction: Maximum relative perturbation (0.25 = +/-25%)
        rng: Random source (default: module random)

    Returns:
        Jittered delay, never negative
    """
    if delay <= 0 or fraction <= 0:
        return max(0.0, delay)
    spread = delay * fraction
    uniform = (rng or random).uniform
    return max(0.0, delay + uniform(-spread, spread))


@dataclass
class PacingPolicy:
    """Delays applied between units of work, in seconds."""

    inter_store_delay: float = 5.0
    inter_product_delay: float = 2.0
    jitter: JitterMode = JitterMode.SYMMETRIC
    jitter_fraction: float = 0.25
    additive_jitter: float = 0.5

    @classmethod
    def from_scraping_config(cls, config: ScrapingConfig) -> "PacingPolicy":
        return cls(
            inter_store_delay=config.inter_store_delay_ms / 1000.0,
            inter_product_delay=config.inter_product_delay_ms / 1000.0,
            jitter=config.pacing_jitter,
            jitter_fraction=config.jitter_fraction,
            additive_jitter=config.additive_jitter_ms / 1000.0,
        )

    @classmethod
    def disabled(cls) -> "PacingPolicy":
        """No pauses at all."""
        return cls(
            inter_store_delay=0.0,
            inter_product_delay=0.0,
            jitter=JitterMode.NONE,
        )


@dataclass
class PacingStats:
    """Observed pauses."""

    product_pauses: int = 0
    store_pauses: int = 0
    product_seconds: float = 0.0
    store_seconds: float = 0.0
    delays: list[tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> dict[str, float | int]:
        return {
            "product_pauses": self.product_pauses,
            "store_pauses": self.store_pauses,
            "product_seconds": round(self.product_seconds, 3),
            "store_seconds": round(self.store_seconds, 3),
        }


class Pacer:
    """Applies the pacing policy of a single job.

    Usage:
        pacer = Pacer(PacingPolicy.from_scraping_config(config))
        await pacer.between_products()
        await pacer.between_stores()
    """

    def __init__(
        self,
        policy: PacingPolicy | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.policy = policy or PacingPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._stats = PacingStats()

    def jittered(self, delay: float) -> float:
        """Apply the configured jitter policy to a delay."""
        mode = self.policy.jitter
        if delay <= 0:
            return 0.0
        if mode == JitterMode.SYMMETRIC:
            return add_jitter(delay, self.policy.jitter_fraction, self._rng)
        if mode == JitterMode.ADDITIVE:
            return delay + self._rng.uniform(0.0, self.policy.additive_jitter)
        return delay

    async def between_products(self) -> float:
        """Pause after a product, before the next product of the same store."""
        delay = self.jittered(self.policy.inter_product_delay)
        self._stats.product_pauses += 1
        self._stats.product_seconds += delay
        self._stats.delays.append(("product", delay))
        await self._sleep(delay)
        return delay

    async def between_stores(self) -> float:
        """Pause after a store, before the next store."""
        delay = self.jittered(self.policy.inter_store_delay)
        self._stats.store_pauses += 1
        self._stats.store_seconds += delay
        self._stats.delays.append(("store", delay))
        await self._sleep(delay)
        return delay

    def stats(self) -> PacingStats:
        """Get pacing statistics for this job."""
        return self._stats
