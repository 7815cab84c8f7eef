import datetime as dt

from packages.core.reminders.models import Frequency
from packages.core.reminders.recurrence import refresh_stale


UTC = dt.timezone.utc


def test_advance_steps_from_previous_due_date(ctx, fake_scheduler, make_reminder):
    reminder = make_reminder(
        frequency=Frequency.WEEKLY, due_date=dt.datetime(2024, 1, 1, 9, tzinfo=UTC)
    )
    ctx.reminders.insert(reminder)

    updated = ctx.recurrence.advance(reminder, now=dt.datetime(2024, 1, 15, 9, tzinfo=UTC))

    assert updated.due_date == dt.datetime(2024, 1, 22, 9, tzinfo=UTC)
    assert ctx.reminders.get(reminder.id) == updated
    job = fake_scheduler.jobs[updated.scheduled_job_handle]
    assert job.when == updated.due_date
    assert job.data == {"reminder_id": reminder.id}


def test_advance_ignores_single_reminders(ctx, fake_scheduler, make_reminder):
    reminder = make_reminder()
    ctx.reminders.insert(reminder)

    assert ctx.recurrence.advance(reminder) is None
    assert fake_scheduler.jobs == {}
    assert ctx.reminders.get(reminder.id) == reminder


def test_refresh_stale_only_touches_past_recurring(make_reminder, clock):
    past = clock.now - dt.timedelta(days=3)
    recurring = make_reminder(frequency=Frequency.DAILY, due_date=past)
    single = make_reminder(due_date=past)
    future = make_reminder(frequency=Frequency.DAILY)

    refreshed = refresh_stale(recurring, clock.now)
    assert refreshed.due_date == past + dt.timedelta(days=4)
    assert refresh_stale(single, clock.now) == single
    assert refresh_stale(future, clock.now) == future
