"""
Tests for the research job state machine (simulated and live provider).
"""
import asyncio
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from marketlens.models import Citation
from marketlens.research.caesar_client import ProviderStatus, ResearchProviderError
from marketlens.research.jobs import (
    EXPIRED_ERROR,
    STATUS_RANK,
    SUBMIT_FAILED_ERROR,
    ResearchJobManager,
)
from marketlens.research.simulation import SIMULATED_RESULT, simulated_status
from marketlens.storage import MarketStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self):
        self.now = datetime(2024, 11, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class TestSimulatedTimeline(unittest.TestCase):

    def test_phases(self):
        self.assertEqual(simulated_status(0).status, "pending")
        self.assertEqual(simulated_status(2.999).status, "pending")
        self.assertEqual(simulated_status(3.0).status, "processing")
        self.assertEqual(simulated_status(7.999).status, "processing")
        self.assertEqual(simulated_status(8.0).status, "completed")

    def test_completed_carries_canned_result(self):
        status = simulated_status(60)
        self.assertEqual(status.result, SIMULATED_RESULT)
        self.assertEqual([c.id for c in status.citations], ["cite-1", "cite-2", "cite-3"])
        self.assertEqual([c.relevance_score for c in status.citations], [0.92, 0.85, 0.78])

    def test_non_terminal_phases_have_no_result(self):
        self.assertIsNone(simulated_status(1).result)
        self.assertIsNone(simulated_status(5).citations)

    def test_custom_thresholds(self):
        self.assertEqual(simulated_status(1, pending_seconds=0.5, complete_seconds=2).status, "processing")
        self.assertEqual(simulated_status(2, pending_seconds=0.5, complete_seconds=2).status, "completed")


class TestSimulatedJobs(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.store = MarketStore(load_sample_data=False)
        self.manager = ResearchJobManager(self.store, clock=self.clock)

    async def asyncTearDown(self):
        await self.manager.aclose()

    async def test_submitted_job_is_pending(self):
        job = await self.manager.submit("Will BTC hit 100k?", compute_units=3, market_id="poly-btc-100k")
        self.assertEqual(job.status, "pending")
        self.assertEqual(job.compute_units, 3)
        self.assertEqual(job.market_id, "poly-btc-100k")

        polled = await self.manager.poll(job.id)
        self.assertEqual(polled.status, "pending")
        self.assertIsNone(polled.completed_at)

    async def test_status_never_moves_backwards(self):
        job = await self.manager.submit("Fed cut?")
        await self.manager.drain()

        seen = []
        for step in (1, 1, 2, 1, 2, 2, 3, 10):
            self.clock.advance(step)
            seen.append((await self.manager.poll(job.id)).status)

        ranks = [STATUS_RANK[s] for s in seen]
        self.assertEqual(ranks, sorted(ranks))
        self.assertEqual(seen[0], "pending")
        self.assertIn("processing", seen)
        self.assertEqual(seen[-1], "completed")

    async def test_completed_job_has_result_and_timestamp(self):
        job = await self.manager.submit("Recession?")
        self.clock.advance(9)
        done = await self.manager.poll(job.id)

        self.assertEqual(done.status, "completed")
        self.assertEqual(done.result, SIMULATED_RESULT)
        self.assertEqual(len(done.citations), 3)
        self.assertEqual(done.completed_at, self.clock.now)

    async def test_terminal_poll_is_pure_read(self):
        job = await self.manager.submit("GPT-5?")
        self.clock.advance(9)
        first = await self.manager.poll(job.id)

        self.clock.advance(1000)
        second = await self.manager.poll(job.id)
        self.assertEqual(first, second)
        self.assertIs(self.store.get_job(job.id), second)

    async def test_unknown_job(self):
        self.assertIsNone(await self.manager.poll("does-not-exist"))

    async def test_stale_job_expires(self):
        manager = ResearchJobManager(self.store, clock=self.clock, max_job_age_seconds=5)
        manager.complete_seconds = 100
        job = await manager.submit("Slow question")

        self.clock.advance(6)
        expired = await manager.poll(job.id)
        self.assertEqual(expired.status, "failed")
        self.assertEqual(expired.error, EXPIRED_ERROR)
        self.assertEqual(expired.completed_at, self.clock.now)
        await manager.aclose()

    async def test_jobs_listed_newest_first(self):
        first = await self.manager.submit("first")
        self.clock.advance(1)
        second = await self.manager.submit("second")
        self.assertEqual([j.id for j in self.manager.list_jobs()], [second.id, first.id])


class TestLiveProviderJobs(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.store = MarketStore(load_sample_data=False)
        self.client = AsyncMock()
        self.client.submit.return_value = "caesar-123"
        self.manager = ResearchJobManager(self.store, client=self.client, clock=self.clock)

    async def asyncTearDown(self):
        await self.manager.aclose()

    async def test_submit_records_provider_id(self):
        job = await self.manager.submit("Will the EU pass AI regulation?", compute_units=5)
        self.assertEqual(job.status, "pending")
        await self.manager.drain()

        self.client.submit.assert_awaited_once_with("Will the EU pass AI regulation?", 5)
        self.assertEqual(self.store.get_job(job.id).provider_job_id, "caesar-123")

    async def test_provider_progress_and_regression_guard(self):
        job = await self.manager.submit("S&P above 5500?")
        await self.manager.drain()

        self.client.get_status.return_value = ProviderStatus(status="processing")
        self.assertEqual((await self.manager.poll(job.id)).status, "processing")

        # Provider reporting an earlier state is ignored
        self.client.get_status.return_value = ProviderStatus(status="pending")
        self.assertEqual((await self.manager.poll(job.id)).status, "processing")

        citation = Citation(id="c1", url="https://example.com", title="Source", snippet="...", relevance_score=0.5)
        self.client.get_status.return_value = ProviderStatus(
            status="completed", result="Looks underpriced.", citations=[citation]
        )
        done = await self.manager.poll(job.id)
        self.assertEqual(done.status, "completed")
        self.assertEqual(done.result, "Looks underpriced.")
        self.assertEqual(done.citations, [citation])
        self.assertIsNotNone(done.completed_at)

        self.client.get_status.reset_mock()
        await self.manager.poll(job.id)
        self.client.get_status.assert_not_awaited()

    async def test_provider_failure_status(self):
        job = await self.manager.submit("Bad query")
        await self.manager.drain()

        self.client.get_status.return_value = ProviderStatus(status="failed", error="quota exceeded")
        failed = await self.manager.poll(job.id)
        self.assertEqual(failed.status, "failed")
        self.assertEqual(failed.error, "quota exceeded")

    async def test_status_check_error_leaves_job_unchanged(self):
        job = await self.manager.submit("Flaky provider")
        await self.manager.drain()

        self.client.get_status.side_effect = ResearchProviderError("connection reset")
        polled = await self.manager.poll(job.id)
        self.assertEqual(polled.status, "pending")
        self.assertIsNone(polled.error)

    async def test_submit_error_falls_back_to_simulation(self):
        self.client.submit.side_effect = ResearchProviderError("503 Service Unavailable")
        job = await self.manager.submit("Provider down")
        await self.manager.drain()

        self.assertIsNone(self.store.get_job(job.id).provider_job_id)
        self.assertTrue(self.store.get_job(job.id).simulated)
        self.assertNotIn("simulated", self.store.get_job(job.id).model_dump(by_alias=True))
        self.clock.advance(9)
        done = await self.manager.poll(job.id)
        self.assertEqual(done.status, "completed")
        self.assertEqual(done.result, SIMULATED_RESULT)
        self.client.get_status.assert_not_awaited()

    async def test_poll_while_submit_in_flight_leaves_job_unchanged(self):
        released = asyncio.Event()

        async def slow_submit(query, compute_units):
            await released.wait()
            return "caesar-slow"

        self.client.submit.side_effect = slow_submit
        job = await self.manager.submit("Slow provider")
        await asyncio.sleep(0)

        # Past the simulated completion point, but the provider has not answered yet
        self.clock.advance(9)
        polled = await self.manager.poll(job.id)
        self.assertEqual(polled.status, "pending")
        self.assertIsNone(polled.result)
        self.assertIsNone(polled.citations)
        self.client.get_status.assert_not_awaited()

        released.set()
        await self.manager.drain()
        self.assertEqual(self.store.get_job(job.id).provider_job_id, "caesar-slow")
        self.assertFalse(self.store.get_job(job.id).simulated)

        self.client.get_status.return_value = ProviderStatus(status="processing")
        self.assertEqual((await self.manager.poll(job.id)).status, "processing")
        self.client.get_status.assert_awaited_once_with("caesar-slow")

    async def test_unexpected_dispatch_error_fails_job(self):
        self.client.submit.side_effect = RuntimeError("boom")
        job = await self.manager.submit("Crashes")
        self.assertEqual(job.status, "pending")
        await self.manager.drain()

        failed = self.store.get_job(job.id)
        self.assertEqual(failed.status, "failed")
        self.assertEqual(failed.error, SUBMIT_FAILED_ERROR)

        # Terminal: further polls change nothing
        self.clock.advance(60)
        self.assertEqual(await self.manager.poll(job.id), failed)

    async def test_close_releases_client(self):
        await self.manager.aclose()
        self.client.close.assert_awaited()


if __name__ == "__main__":
    unittest.main()
