"""Completion-time estimates for newly submitted requests.

Each category is treated as its own single-server FIFO queue: every pending
request costs a fixed number of staff minutes, and those minutes only exist
inside the business calendar. An estimate is computed once at submission
and stored; it is never recomputed as the queue moves.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Sequence

from backend.core import config
from backend.models.request import RequestCategory, StudentRequest


@dataclass(frozen=True)
class BusinessCalendar:
    """Working weekdays (``date.weekday()`` numbers) and half-open working hours."""

    open_time: time = time(config.WORK_DAY_START, 0)
    close_time: time = time(config.WORK_DAY_END, 0) if config.WORK_DAY_END < 24 else time.max
    working_days: frozenset[int] = field(default_factory=lambda: frozenset(config.WORKING_DAYS))

    def __post_init__(self) -> None:
        if self.open_time >= self.close_time:
            raise ValueError('open_time must be before close_time.')
        if not self.working_days:
            raise ValueError('At least one working day is required.')

    def is_working_day(self, day: date) -> bool:
        return day.weekday() in self.working_days

    def is_open(self, moment: datetime) -> bool:
        return self.is_working_day(moment.date()) and self.open_time <= moment.time() < self.close_time

    def opening(self, day: date) -> datetime:
        return datetime.combine(day, self.open_time)

    def closing(self, day: date) -> datetime:
        return datetime.combine(day, self.close_time)

    def next_opening(self, moment: datetime) -> datetime:
        """Opening of the first working day after ``moment``'s date."""
        day = moment.date() + timedelta(days=1)
        while not self.is_working_day(day):
            day += timedelta(days=1)
        return self.opening(day)

    def roll_forward(self, moment: datetime) -> datetime:
        if self.is_open(moment):
            return moment
        return self.next_opening(moment)


class QueueEstimator:
    def __init__(
        self,
        calendar: BusinessCalendar | None = None,
        minutes_per_request: int = config.MINUTES_PER_REQUEST,
    ) -> None:
        if minutes_per_request <= 0:
            raise ValueError('minutes_per_request must be positive.')
        self.calendar = calendar or BusinessCalendar()
        self.service_time = timedelta(minutes=minutes_per_request)

    def anchor(self, submission_time: datetime, backlog: Sequence[StudentRequest]) -> datetime:
        if not backlog:
            return submission_time
        last_estimate = backlog[-1].estimated_completion
        if last_estimate is None:
            return submission_time
        return max(submission_time, last_estimate)

    def estimate(
        self,
        category: RequestCategory,
        submission_time: datetime,
        backlog: Sequence[StudentRequest],
    ) -> datetime:
        """Return when a request joining ``category`` now is expected to be handled.

        ``backlog`` holds the category's pending requests in submission order.
        Requests from other categories are ignored.
        """
        same_category = [request for request in backlog if request.category == category]
        current = self.calendar.roll_forward(self.anchor(submission_time, same_category))
        remaining = self.service_time

        while remaining > timedelta(0):
            if not self.calendar.is_open(current):
                current = self.calendar.next_opening(current)
                continue

            left_today = self.calendar.closing(current.date()) - current
            if remaining <= left_today:
                current += remaining
                remaining = timedelta(0)
            else:
                remaining -= left_today
                current = self.calendar.next_opening(current)

        return current


def format_completion(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = 'PM' if moment.hour >= 12 else 'AM'
    return f'{moment:%Y-%m-%d}, {hour}:{moment:%M} {meridiem}'
