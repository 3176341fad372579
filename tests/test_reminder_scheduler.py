import inspect
import logging

from medicare.infrastructure.scheduler.reminder_scheduler import ReminderScheduler


def test_run_once_is_a_plain_function():
    # APScheduler sends plain callables to its thread pool; coroutines would run on the event loop
    assert not inspect.iscoroutinefunction(ReminderScheduler.run_once)


def test_run_once_calls_sweep():
    calls = []
    ReminderScheduler(sweep=lambda: calls.append(1)).run_once()
    assert calls == [1]


def test_run_once_logs_sweep_errors(caplog):
    def boom():
        raise RuntimeError("database is locked")

    with caplog.at_level(logging.ERROR):
        ReminderScheduler(sweep=boom).run_once()
    assert "Error sending reminders: database is locked" in caplog.text


def test_disabled_scheduler_does_not_start():
    scheduler = ReminderScheduler(sweep=lambda: None, enabled=False)
    scheduler.start()
    assert scheduler.is_running is False
