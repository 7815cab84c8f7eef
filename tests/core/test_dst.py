import datetime as dt
from dataclasses import replace

import pytest

from packages.core.errors import ValidationError
from packages.core.reminders.dst import apply_dst_to_reminders
from packages.core.reminders.models import Frequency, ReminderStatus


UTC = dt.timezone.utc


def _insert_scheduled(ctx, reminder):
    handle = ctx.reminder_scheduler.schedule_fire(reminder.id, reminder.due_date)
    stored = replace(reminder, scheduled_job_handle=handle)
    ctx.reminders.insert(stored)
    return stored


def test_dst_forward_shifts_active_reminders(ctx, fake_scheduler, make_reminder):
    late = _insert_scheduled(ctx, make_reminder(due_date=dt.datetime(2024, 6, 1, 23, 45, tzinfo=UTC)))
    noon = _insert_scheduled(ctx, make_reminder(due_date=dt.datetime(2024, 6, 2, 12, 0, tzinfo=UTC)))
    done = make_reminder(status=ReminderStatus.COMPLETED)
    ctx.reminders.insert(done)

    assert apply_dst_to_reminders(
        ctx.reminders, ctx.reminder_scheduler, "Forward", now=ctx.now()
    ) == 2

    assert ctx.reminders.get(late.id).due_date == dt.datetime(2024, 6, 2, 0, 45, tzinfo=UTC)
    assert ctx.reminders.get(noon.id).due_date == dt.datetime(2024, 6, 2, 13, 0, tzinfo=UTC)
    assert ctx.reminders.get(done.id) == done
    assert late.scheduled_job_handle not in fake_scheduler.jobs
    assert sorted(job.when for job in fake_scheduler.jobs.values()) == [
        dt.datetime(2024, 6, 2, 0, 45, tzinfo=UTC),
        dt.datetime(2024, 6, 2, 13, 0, tzinfo=UTC),
    ]


def test_dst_rejects_unknown_direction_before_touching_reminders(ctx, make_reminder):
    reminder = _insert_scheduled(ctx, make_reminder())

    with pytest.raises(ValidationError) as excinfo:
        apply_dst_to_reminders(ctx.reminders, ctx.reminder_scheduler, "sideways")

    assert excinfo.value.errors == {"direction": "invalid_dst_direction"}
    assert ctx.reminders.get(reminder.id) == reminder


def test_dst_moves_stale_recurring_reminder_to_next_occurrence(ctx, clock, fake_scheduler, make_reminder):
    stale = _insert_scheduled(
        ctx, make_reminder(frequency=Frequency.WEEKLY, due_date=clock.now - dt.timedelta(days=3))
    )

    apply_dst_to_reminders(ctx.reminders, ctx.reminder_scheduler, "forward", now=clock.now)

    shifted = ctx.reminders.get(stale.id)
    assert shifted.due_date == stale.due_date + dt.timedelta(days=7, hours=1)
    assert shifted.due_date > clock.now
    assert list(fake_scheduler.jobs) == [shifted.scheduled_job_handle]
    assert fake_scheduler.jobs[shifted.scheduled_job_handle].when == shifted.due_date
