"""Tests for jitter and pacing."""

from __future__ import annotations

import asyncio
import random

import pytest

from pricewatch.core.config.models import JitterMode, ScrapingConfig
from pricewatch.core.fetch.throttling import Pacer, PacingPolicy, add_jitter

from fakes import RecordingSleep


class TestAddJitter:
    def test_stays_within_fraction(self):
        rng = random.Random(7)

        values = [add_jitter(2.0, 0.25, rng) for _ in range(200)]

        assert all(1.5 <= value <= 2.5 for value in values)
        assert len(set(values)) > 1

    def test_zero_delay_stays_zero(self):
        assert add_jitter(0.0, 0.5) == 0.0

    def test_zero_fraction_returns_delay(self):
        assert add_jitter(3.0, 0.0) == 3.0

    def test_never_negative(self):
        rng = random.Random(1)
        assert all(add_jitter(1.0, 1.0, rng) >= 0.0 for _ in range(100))


class TestPacingPolicy:
    def test_from_scraping_config(self):
        policy = PacingPolicy.from_scraping_config(
            ScrapingConfig(
                inter_store_delay_ms=1500,
                inter_product_delay_ms=250,
                pacing_jitter=JitterMode.ADDITIVE,
                additive_jitter_ms=100,
            )
        )

        assert policy.inter_store_delay == 1.5
        assert policy.inter_product_delay == 0.25
        assert policy.jitter == JitterMode.ADDITIVE
        assert policy.additive_jitter == pytest.approx(0.1)

    def test_disabled(self):
        policy = PacingPolicy.disabled()

        assert policy.inter_store_delay == 0.0
        assert policy.inter_product_delay == 0.0
        assert policy.jitter == JitterMode.NONE


class TestPacer:
    def test_unjittered_pauses_are_exact(self):
        sleep = RecordingSleep()
        pacer = Pacer(
            PacingPolicy(inter_store_delay=5.0, inter_product_delay=2.0, jitter=JitterMode.NONE),
            sleep=sleep.sleep,
        )

        async def main():
            await pacer.between_products()
            await pacer.between_stores()

        asyncio.run(main())

        assert sleep.calls == [2.0, 5.0]

    def test_symmetric_jitter_bounds(self):
        sleep = RecordingSleep()
        pacer = Pacer(
            PacingPolicy(inter_product_delay=2.0, jitter=JitterMode.SYMMETRIC, jitter_fraction=0.5),
            sleep=sleep.sleep,
            rng=random.Random(3),
        )

        async def main():
            for _ in range(50):
                await pacer.between_products()

        asyncio.run(main())

        assert all(1.0 <= delay <= 3.0 for delay in sleep.calls)

    def test_additive_jitter_only_adds(self):
        sleep = RecordingSleep()
        pacer = Pacer(
            PacingPolicy(inter_store_delay=1.0, jitter=JitterMode.ADDITIVE, additive_jitter=0.5),
            sleep=sleep.sleep,
            rng=random.Random(5),
        )

        async def main():
            for _ in range(50):
                await pacer.between_stores()

        asyncio.run(main())

        assert all(1.0 <= delay <= 1.5 for delay in sleep.calls)

    def test_stats_count_pauses_by_kind(self):
        sleep = RecordingSleep()
        pacer = Pacer(
            PacingPolicy(inter_store_delay=5.0, inter_product_delay=2.0, jitter=JitterMode.NONE),
            sleep=sleep.sleep,
        )

        async def main():
            await pacer.between_products()
            await pacer.between_products()
            await pacer.between_stores()

        asyncio.run(main())
        stats = pacer.stats()

        assert stats.product_pauses == 2
        assert stats.store_pauses == 1
        assert stats.product_seconds == 4.0
        assert stats.store_seconds == 5.0
        assert stats.delays == [("product", 2.0), ("product", 2.0), ("store", 5.0)]
        assert stats.to_dict()["store_pauses"] == 1
