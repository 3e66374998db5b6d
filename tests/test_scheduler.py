"""Unit tests for the retry scheduler service.

Covers:
- Retry job registration and job defaults
- Immediate first run after start
- No overlapping retry runs (max_instances=1)
- Start/shutdown lifecycle and the shutdown event
- trigger_now for manual runs
"""

import threading
import time
from datetime import datetime
from unittest.mock import Mock

from notifier.scheduler import RETRY_JOB_ID, SchedulerService


class TestSchedulerService:
    """Test suite for SchedulerService."""

    def test_initialization(self):
        """Test constructor stores its arguments and does not start."""
        job = Mock()
        shutdown_event = threading.Event()

        service = SchedulerService(job_callable=job, interval_seconds=60, shutdown_event=shutdown_event)

        assert service.interval_seconds == 60
        assert service.job_callable is job
        assert service.shutdown_event is shutdown_event
        assert not service.is_running()

    def test_job_defaults(self):
        """Test max_instances=1, coalesce and misfire grace equal to the interval."""
        service = SchedulerService(job_callable=Mock(), interval_seconds=900)

        service.start()
        try:
            job = service.scheduler.get_job(RETRY_JOB_ID)
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.misfire_grace_time == 900
        finally:
            service.shutdown(wait=False)

    def test_retry_job_registered_under_fixed_id(self):
        service = SchedulerService(job_callable=Mock(), interval_seconds=900)

        service.start()
        try:
            job = service.scheduler.get_job(RETRY_JOB_ID)
            assert job is not None
            assert job.name == "Delivery Retry"
            assert job.trigger.interval.total_seconds() == 900
            assert len(service.scheduler.get_jobs()) == 1
        finally:
            service.shutdown(wait=False)

    def test_start_and_shutdown_sets_event(self):
        shutdown_event = threading.Event()
        service = SchedulerService(job_callable=Mock(), interval_seconds=300, shutdown_event=shutdown_event)

        service.start()
        assert service.is_running()

        service.shutdown(wait=False)
        assert not service.is_running()
        assert shutdown_event.is_set()

    def test_shutdown_without_event(self):
        service = SchedulerService(job_callable=Mock(), interval_seconds=60)

        service.start()
        service.shutdown(wait=False)

        assert not service.is_running()

    def test_first_run_is_immediate(self):
        """Test the retry job runs right after start, not one interval later."""
        ran = threading.Event()

        service = SchedulerService(job_callable=ran.set, interval_seconds=3600)
        service.start()
        try:
            assert ran.wait(timeout=2)
        finally:
            service.shutdown(wait=True)

    def test_runs_do_not_overlap(self):
        """Test a slow retry run is never joined by a second one."""
        active = []
        overlaps = []
        lock = threading.Lock()

        def slow_run():
            with lock:
                if active:
                    overlaps.append(time.time())
                active.append(1)
            time.sleep(1.2)
            with lock:
                active.pop()

        service = SchedulerService(job_callable=slow_run, interval_seconds=1)
        service.start()
        time.sleep(2.5)
        service.shutdown(wait=True)

        assert overlaps == []

    def test_shutdown_with_wait_lets_run_finish(self):
        started = threading.Event()
        finished = threading.Event()

        def slow_run():
            started.set()
            time.sleep(0.5)
            finished.set()

        service = SchedulerService(job_callable=slow_run, interval_seconds=60)
        service.start()
        started.wait(timeout=2)

        service.shutdown(wait=True)

        assert finished.is_set()

    def test_failing_run_does_not_stop_scheduler(self):
        calls = []

        def flaky_run():
            calls.append(time.time())
            if len(calls) == 1:
                raise RuntimeError("database unavailable")

        service = SchedulerService(job_callable=flaky_run, interval_seconds=1)
        service.start()
        time.sleep(2.5)
        service.shutdown(wait=True)

        assert len(calls) >= 2

    def test_trigger_now_runs_synchronously(self):
        job = Mock()
        service = SchedulerService(job_callable=job, interval_seconds=3600)

        service.trigger_now()

        job.assert_called_once_with()

    def test_next_run_time(self):
        service = SchedulerService(job_callable=Mock(), interval_seconds=60)
        assert service.get_next_run_time() is None

        service.start()
        try:
            assert isinstance(service.get_next_run_time(), datetime)
        finally:
            service.shutdown(wait=False)

    def test_second_start_is_ignored(self):
        service = SchedulerService(job_callable=Mock(), interval_seconds=60)

        service.start()
        service.start()

        assert service.is_running()
        assert len(service.scheduler.get_jobs()) == 1
        service.shutdown(wait=False)
