"""
Urgency and Weight Scoring for the Task Scheduler.

This module holds the read-only view of a task that the scheduling
algorithms work with, and the free functions that derive time pressure and
ranking weight from it. Nothing here reads the wall clock: every function
that depends on "now" takes it as an argument.

Urgency Buckets:
---------------
- Overdue:            10
- Due within 24h:      9
- Due within 48h:      8
- Due within a week:   7
- Later:               max(1, 6 - weeks_left)

Combined Weight Formula:
-----------------------
combined_weight = (priority * 0.4) +
                  (urgency * 0.4) +
                  ((60 - estimated_duration) * 0.2)

The duration term rewards shorter tasks within a priority tier. The weight
is not clamped: long tasks legitimately produce negative values, and the
Priority algorithm relies on the raw ordering.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import math


class TaskStatus(Enum):
    """Lifecycle states of a task."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskCategory(Enum):
    WORK = "work"
    PERSONAL = "personal"
    URGENT = "urgent"
    MEETING = "meeting"
    OTHER = "other"


# Only these states are placed on the calendar
SCHEDULABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})

MIN_PRIORITY = 1
MAX_PRIORITY = 5

# Weight factors
PRIORITY_FACTOR = 0.4
URGENCY_FACTOR = 0.4
DURATION_FACTOR = 0.2
DURATION_PIVOT_MINUTES = 60

HOURS_PER_WEEK = 168


@dataclass(frozen=True)
class Task:
    """
    Read-only view of a task record supplied by the caller.

    Attributes:
        id: Opaque identifier, unique within one task set
        title: Display title, not used by the algorithms
        priority: Importance from 1 (low) to 5 (high)
        estimated_duration: Minutes of work to place on the calendar
        due_date: When the task is due
        status: Lifecycle state; only pending/in-progress tasks are scheduled
        category: Free classification carried through to results
        completed_at: When the task was finished (completed tasks only)
        actual_time_spent: Minutes actually spent (completed tasks only)
        scheduled_algorithm: Algorithm tag the task was last scheduled with
    """
    id: Any
    title: str
    priority: int
    estimated_duration: int
    due_date: datetime
    status: TaskStatus = TaskStatus.PENDING
    category: TaskCategory = TaskCategory.OTHER
    completed_at: Optional[datetime] = None
    actual_time_spent: Optional[int] = None
    scheduled_algorithm: Optional[str] = None

    @property
    def is_schedulable(self) -> bool:
        return self.status in SCHEDULABLE_STATUSES


@dataclass(frozen=True)
class SchedulingWeight:
    """Inputs and result of the combined weight calculation for one task."""
    priority: int
    urgency: int
    estimated_duration: int
    combined_weight: float

    def to_dict(self) -> Dict:
        return {
            'priority': self.priority,
            'urgency': self.urgency,
            'estimated_duration': self.estimated_duration,
            'combined_weight': round(self.combined_weight, 2)
        }


def calculate_urgency(due_date: datetime, now: datetime) -> int:
    """
    Derive a 1-10 urgency score from the time left until ``due_date``.

    The score never increases as the due date moves later.
    """
    hours_left = (due_date - now).total_seconds() / 3600

    if hours_left < 0:
        return 10
    if hours_left < 24:
        return 9
    if hours_left < 48:
        return 8
    if hours_left < HOURS_PER_WEEK:
        return 7

    return max(1, 6 - math.floor(hours_left / HOURS_PER_WEEK))


def calculate_combined_weight(priority: int, urgency: int, estimated_duration: int) -> float:
    """Blend priority, urgency and (inverse) duration into one ranking weight."""
    return (
        priority * PRIORITY_FACTOR +
        urgency * URGENCY_FACTOR +
        (DURATION_PIVOT_MINUTES - estimated_duration) * DURATION_FACTOR
    )


def get_scheduling_weight(task: Task, now: datetime) -> SchedulingWeight:
    """Compute the weight breakdown the Priority algorithm ranks by."""
    urgency = calculate_urgency(task.due_date, now)
    return SchedulingWeight(
        priority=task.priority,
        urgency=urgency,
        estimated_duration=task.estimated_duration,
        combined_weight=calculate_combined_weight(
            task.priority, urgency, task.estimated_duration
        )
    )


def is_overdue(task: Task, now: datetime) -> bool:
    """A task is overdue once its due date has passed, unless it was completed."""
    return now > task.due_date and task.status is not TaskStatus.COMPLETED


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def task_from_dict(data: Mapping) -> Task:
    """
    Build a Task from a mapping of already validated fields.

    Datetimes may be given as ``datetime`` objects or ISO strings; status
    and category may be given as enum members or their string values.
    """
    return Task(
        id=data.get('id'),
        title=data.get('title', 'Untitled Task'),
        priority=int(data['priority']),
        estimated_duration=int(data['estimated_duration']),
        due_date=_parse_datetime(data['due_date']),
        status=TaskStatus(data.get('status', TaskStatus.PENDING)),
        category=TaskCategory(data.get('category', TaskCategory.OTHER)),
        completed_at=_parse_datetime(data.get('completed_at')),
        actual_time_spent=data.get('actual_time_spent'),
        scheduled_algorithm=data.get('scheduled_algorithm')
    )


def task_to_dict(task: Task) -> Dict:
    """Convert a Task to a dictionary for JSON serialization."""
    return {
        'id': task.id,
        'title': task.title,
        'priority': task.priority,
        'estimated_duration': task.estimated_duration,
        'due_date': task.due_date.isoformat(),
        'status': task.status.value,
        'category': task.category.value
    }
