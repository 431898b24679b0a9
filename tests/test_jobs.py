import asyncio

from apscheduler.triggers.interval import IntervalTrigger

from conftest import run
from wayfarer.jobs import JobGuard, build_scheduler


def test_guard_skips_while_running():
    guard = JobGuard("test")
    calls = []

    async def scenario():
        started = asyncio.Event()
        finish = asyncio.Event()

        async def slow():
            calls.append("slow")
            started.set()
            await finish.wait()

        async def fast():
            calls.append("fast")

        first = asyncio.ensure_future(guard.run(slow))
        await started.wait()
        skipped = await guard.run(fast)
        finish.set()
        ran = await first
        return ran, skipped

    ran, skipped = run(scenario())

    assert ran is True
    assert skipped is False
    assert calls == ["slow"]
    assert guard.running is False


def test_guard_releases_after_failure():
    guard = JobGuard("test")

    async def boom():
        raise RuntimeError("boom")

    assert run(guard.run(boom)) is True
    assert guard.running is False
    assert guard.try_acquire() is True
    guard.release()


def test_guards_are_independent():
    a, b = JobGuard("a"), JobGuard("b")
    assert a.try_acquire()
    assert b.try_acquire()
    assert not a.try_acquire()


def test_build_scheduler_registers_jobs():
    scheduler = build_scheduler()
    jobs = {job.id: job for job in scheduler.get_jobs()}
    assert set(jobs) == {"email_send", "email_delete", "price_check"}
    assert isinstance(jobs["price_check"].trigger, IntervalTrigger)
    assert all(job.max_instances == 1 for job in jobs.values())
