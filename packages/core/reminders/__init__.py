from .models import Audience, DSTMovement, Frequency, Reminder, ReminderStatus, TimeZone

__all__ = [
    "Audience",
    "DSTMovement",
    "Frequency",
    "Reminder",
    "ReminderStatus",
    "TimeZone",
]
