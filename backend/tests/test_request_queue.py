"""Tests for the single-slot generation queue."""

from __future__ import annotations

import asyncio
import unittest

from app.config import Settings
from app.services.gemini import UpstreamHTTPError
from app.services.request_queue import GenerationQueue, build_generation_queue


class _FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class _RecordingGenerator:
    def __init__(self, fake_time: _FakeTime, work_seconds: float = 0.0, fail_on: str | None = None) -> None:
        self.fake_time = fake_time
        self.work_seconds = work_seconds
        self.fail_on = fail_on
        self.starts: list[tuple[str, float]] = []
        self.completions: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, prompt: str) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.starts.append((prompt, self.fake_time.now))
        await asyncio.sleep(0)
        self.fake_time.now += self.work_seconds
        self.completions.append(self.fake_time.now)
        self.in_flight -= 1
        if prompt == self.fail_on:
            raise RuntimeError(f"failed: {prompt}")
        return prompt.upper()


class GenerationQueueTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.fake_time = _FakeTime()

    def _queue(self, generator: _RecordingGenerator, interval: float = 5.0) -> GenerationQueue:
        return GenerationQueue(
            generator,
            min_interval_seconds=interval,
            clock=self.fake_time.clock,
            sleep=self.fake_time.sleep,
        )

    async def test_first_request_runs_without_waiting(self) -> None:
        generator = _RecordingGenerator(self.fake_time)
        queue = self._queue(generator)

        result = await queue.submit("hello")

        self.assertEqual(result, "HELLO")
        self.assertEqual(self.fake_time.sleeps, [])
        self.assertFalse(queue.is_processing)

    async def test_queued_calls_are_spaced_by_min_interval(self) -> None:
        generator = _RecordingGenerator(self.fake_time, work_seconds=2.0)
        queue = self._queue(generator, interval=5.0)

        results = await asyncio.gather(*(queue.submit(p) for p in ["a", "b", "c", "d"]))

        self.assertEqual(results, ["A", "B", "C", "D"])
        self.assertEqual([prompt for prompt, _ in generator.starts], ["a", "b", "c", "d"])
        for index in range(1, len(generator.starts)):
            started_at = generator.starts[index][1]
            self.assertGreaterEqual(started_at - generator.completions[index - 1], 5.0)
        self.assertEqual(generator.max_in_flight, 1)
        self.assertEqual(queue.pending_count, 0)

    async def test_no_wait_when_interval_already_elapsed(self) -> None:
        generator = _RecordingGenerator(self.fake_time)
        queue = self._queue(generator, interval=5.0)

        await queue.submit("first")
        self.fake_time.now += 10.0
        await queue.submit("second")

        self.assertEqual(self.fake_time.sleeps, [])

    async def test_partial_wait_covers_only_remaining_interval(self) -> None:
        generator = _RecordingGenerator(self.fake_time)
        queue = self._queue(generator, interval=5.0)

        await queue.submit("first")
        self.fake_time.now += 3.0
        await queue.submit("second")

        self.assertEqual(self.fake_time.sleeps, [2.0])

    async def test_failure_is_delivered_to_its_caller_only(self) -> None:
        generator = _RecordingGenerator(self.fake_time, fail_on="bad")
        queue = self._queue(generator, interval=1.0)

        results = await asyncio.gather(
            queue.submit("good"),
            queue.submit("bad"),
            queue.submit("after"),
            return_exceptions=True,
        )

        self.assertEqual(results[0], "GOOD")
        self.assertIsInstance(results[1], RuntimeError)
        self.assertEqual(results[2], "AFTER")
        self.assertGreaterEqual(generator.starts[2][1] - generator.completions[1], 1.0)
        self.assertFalse(queue.is_processing)


class BuildGenerationQueueTests(unittest.IsolatedAsyncioTestCase):
    async def test_queue_applies_backoff_and_spacing(self) -> None:
        delays: list[float] = []

        async def record_sleep(seconds: float) -> None:
            delays.append(seconds)

        class _Client:
            def __init__(self) -> None:
                self.calls = 0

            def generate(self, prompt: str) -> str:
                self.calls += 1
                if self.calls <= 2:
                    raise UpstreamHTTPError(429, "slow down")
                return f"reply to {prompt}"

        settings = Settings(
            _env_file=None,
            rate_limit_delay_seconds=5.0,
            max_retries=3,
            initial_retry_delay_seconds=0.5,
        )
        client = _Client()
        queue = build_generation_queue(settings, client=client, sleep=record_sleep)

        first = await queue.submit("one")
        second = await queue.submit("two")

        self.assertEqual(first, "reply to one")
        self.assertEqual(second, "reply to two")
        self.assertEqual(client.calls, 4)
        self.assertEqual(delays[:2], [0.5, 1.0])
        self.assertEqual(len(delays), 3)
        self.assertAlmostEqual(delays[2], 5.0, delta=0.5)


if __name__ == "__main__":
    unittest.main()
