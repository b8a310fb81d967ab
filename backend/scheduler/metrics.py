"""
Schedule metrics and completion analytics.

Metrics are measured against the start of the first entry of a schedule:

- wait time:        entry.start_time - schedule start
- turnaround time:  entry.end_time   - schedule start
- on-time:          entry.end_time <= task.due_date
- utilization:      busy time / (last end - first start)

Averages are reported in whole minutes (rounded up) and percentages with
one decimal place. An empty schedule reports zero for everything.
"""

from collections import OrderedDict
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Dict, List, Sequence

from .errors import InvalidParameterError
from .scoring import Task, TaskStatus

if TYPE_CHECKING:
    from .algorithms import ScheduleEntry


ONE_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True)
class ScheduleMetrics:
    """Aggregate performance figures for one schedule."""
    total_tasks: int = 0
    scheduled_tasks: int = 0
    average_wait_time: int = 0
    average_turnaround_time: int = 0
    on_time_completion: float = 0.0
    utilization_rate: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


def ceil_minutes(span: timedelta, count: int = 1) -> int:
    """Mean of ``span`` over ``count`` items, in minutes, rounded up."""
    return -(-span // (ONE_MINUTE * count))


def percentage(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def calculate_metrics(entries: Sequence['ScheduleEntry'], tasks: Sequence[Task]) -> ScheduleMetrics:
    """
    Score a schedule.

    Args:
        entries: Schedule entries in placement order
        tasks: The eligible tasks the schedule was built from

    Returns:
        ScheduleMetrics; all zero when ``entries`` is empty
    """
    if not entries:
        return ScheduleMetrics(total_tasks=len(tasks))

    schedule_start = entries[0].start_time
    total_wait = timedelta()
    total_turnaround = timedelta()
    busy = timedelta()
    on_time_count = 0

    for entry in entries:
        total_wait += entry.start_time - schedule_start
        total_turnaround += entry.end_time - schedule_start
        busy += entry.end_time - entry.start_time

        if entry.end_time <= entry.task.due_date:
            on_time_count += 1

    total_span = entries[-1].end_time - schedule_start

    return ScheduleMetrics(
        total_tasks=len(tasks),
        scheduled_tasks=len(entries),
        average_wait_time=ceil_minutes(total_wait, len(entries)),
        average_turnaround_time=ceil_minutes(total_turnaround, len(entries)),
        on_time_completion=percentage(on_time_count, len(entries)),
        utilization_rate=percentage(busy / ONE_MINUTE, total_span / ONE_MINUTE)
    )


def group_entries_by_date(entries: Sequence['ScheduleEntry']) -> Dict[str, List['ScheduleEntry']]:
    """Group entries by the calendar date they start on, keeping schedule order."""
    groups: Dict[str, List['ScheduleEntry']] = OrderedDict()
    for entry in entries:
        groups.setdefault(entry.start_time.date().isoformat(), []).append(entry)
    return groups


def completion_analytics(tasks: Sequence[Task], now: datetime, days: int = 30) -> Dict:
    """
    Summarize how well past schedules held up.

    Only completed tasks finished within the last ``days`` days that carry
    the algorithm they were scheduled with are counted.

    Returns:
        dict with total_completed_tasks, algorithm_usage, average_accuracy,
        on_time_completion and time_variance
    """
    if days < 1:
        raise InvalidParameterError("days must be at least 1", field='days')

    try:
        window_start = now - timedelta(days=days)
    except OverflowError as exc:
        raise InvalidParameterError(
            f"An analytics window of {days} days reaches before the first representable date",
            field='days'
        ) from exc

    completed = [
        task for task in tasks
        if task.status is TaskStatus.COMPLETED
        and task.completed_at is not None
        and task.completed_at >= window_start
        and task.scheduled_algorithm
    ]

    algorithm_usage: Dict[str, int] = {}
    time_variance = []
    total_accuracy = 0.0
    on_time_count = 0

    for task in completed:
        algorithm_usage[task.scheduled_algorithm] = algorithm_usage.get(task.scheduled_algorithm, 0) + 1

        # Estimation accuracy: 100 when actual == estimated, falling with the relative error
        if task.actual_time_spent:
            error = abs(task.actual_time_spent - task.estimated_duration) / task.estimated_duration
            total_accuracy += max(0.0, 100 - error * 100)
            time_variance.append({
                'task_id': task.id,
                'estimated': task.estimated_duration,
                'actual': task.actual_time_spent,
                'variance': task.actual_time_spent - task.estimated_duration
            })

        if task.completed_at <= task.due_date:
            on_time_count += 1

    return {
        'total_completed_tasks': len(completed),
        'algorithm_usage': algorithm_usage,
        'average_accuracy': round(total_accuracy / len(completed), 1) if completed else 0.0,
        'on_time_completion': percentage(on_time_count, len(completed)),
        'time_variance': time_variance,
        'period_days': days
    }
