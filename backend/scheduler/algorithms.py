"""
Scheduling Algorithms for the Task Scheduler.

Three CPU-scheduling strategies repurposed for personal tasks:

- SJF (Shortest Job First): shortest estimated duration first,
  non-preemptive.
- RoundRobin: every task gets a fixed time quantum in turn until its
  work is done; a task may appear in many entries.
- Priority: highest combined weight first (see ``scoring``), ties broken
  by the earlier due date, non-preemptive.

All algorithms share the signature ``(tasks, hours, now, ...)`` and return
a ScheduleResult. Placement starts at the first working instant at or after
``now`` and every entry goes through ``place_duration`` so that work outside
working hours spills over to the next day.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging

from .errors import InvalidAlgorithmError, InvalidParameterError
from .metrics import ScheduleMetrics, calculate_metrics, ceil_minutes
from .scoring import SchedulingWeight, Task, get_scheduling_weight, task_to_dict
from .working_hours import DEFAULT_WORKING_HOURS, WorkingHours, next_working_instant, place_duration

logger = logging.getLogger(__name__)


SJF = 'SJF'
ROUND_ROBIN = 'RoundRobin'
PRIORITY = 'Priority'

DEFAULT_TIME_QUANTUM = 60


@dataclass(frozen=True)
class ScheduleEntry:
    """One contiguous placement of a task (or a slice of one) on the calendar."""
    task: Task
    start_time: datetime
    end_time: datetime
    algorithm: str
    # Round-Robin only
    quantum: Optional[int] = None
    is_complete: Optional[bool] = None
    # Priority only
    priority: Optional[int] = None
    urgency: Optional[int] = None
    weight: Optional[SchedulingWeight] = None

    def to_dict(self) -> Dict:
        result = {
            'task': task_to_dict(self.task),
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'algorithm': self.algorithm
        }
        if self.quantum is not None:
            result['quantum'] = self.quantum
            result['is_complete'] = self.is_complete
        if self.weight is not None:
            result['priority'] = self.priority
            result['urgency'] = self.urgency
            result['weight'] = self.weight.to_dict()
        return result


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of running one algorithm over a task set."""
    algorithm: str
    entries: Tuple[ScheduleEntry, ...] = ()
    total_span_minutes: int = 0
    metrics: ScheduleMetrics = field(default_factory=ScheduleMetrics)

    def to_dict(self) -> Dict:
        return {
            'algorithm': self.algorithm,
            'schedule': [entry.to_dict() for entry in self.entries],
            'total_time': self.total_span_minutes,
            'metrics': self.metrics.to_dict()
        }


@dataclass(frozen=True)
class _QueuedTask:
    """Round-Robin queue record; re-enqueueing creates a new one."""
    task: Task
    remaining: int


def _build_result(algorithm: str, entries: List[ScheduleEntry], tasks: Sequence[Task]) -> ScheduleResult:
    total_span = ceil_minutes(entries[-1].end_time - entries[0].start_time) if entries else 0
    result = ScheduleResult(
        algorithm=algorithm,
        entries=tuple(entries),
        total_span_minutes=total_span,
        metrics=calculate_metrics(entries, tasks)
    )
    logger.debug(
        "%s placed %d task(s) in %d entries spanning %d minutes",
        algorithm, len(tasks), len(entries), total_span
    )
    return result


def _place_in_order(
    ordered: Sequence[Task],
    hours: WorkingHours,
    now: datetime,
    make_entry: Callable[[Task, datetime, datetime], ScheduleEntry]
) -> List[ScheduleEntry]:
    """Place tasks back to back, one contiguous entry each."""
    entries = []
    cursor = next_working_instant(now, hours)

    for task in ordered:
        start, end = place_duration(cursor, task.estimated_duration, hours)
        entries.append(make_entry(task, start, end))
        cursor = end

    return entries


def _eligible(tasks: Sequence[Task]) -> List[Task]:
    return [task for task in tasks if task.is_schedulable]


def validate_time_quantum(time_quantum) -> int:
    if isinstance(time_quantum, bool) or not isinstance(time_quantum, int) or time_quantum < 1:
        raise InvalidParameterError(
            f"time_quantum must be an integer of at least 1 minute, got {time_quantum!r}",
            field='time_quantum'
        )
    return time_quantum


def shortest_job_first(
    tasks: Sequence[Task],
    hours: WorkingHours,
    now: datetime
) -> ScheduleResult:
    """
    Schedule tasks shortest estimated duration first.

    Ties keep their input order.
    """
    tasks = _eligible(tasks)
    ordered = sorted(tasks, key=lambda t: t.estimated_duration)

    entries = _place_in_order(
        ordered, hours, now,
        lambda task, start, end: ScheduleEntry(task=task, start_time=start, end_time=end, algorithm=SJF)
    )
    return _build_result(SJF, entries, tasks)


def round_robin(
    tasks: Sequence[Task],
    hours: WorkingHours,
    now: datetime,
    time_quantum: int = DEFAULT_TIME_QUANTUM
) -> ScheduleResult:
    """
    Schedule tasks in fixed time slices, cycling through them in input order.

    Each turn runs ``min(remaining, time_quantum)`` minutes of the task at
    the head of the queue. Unfinished tasks go to the back of the queue.

    Raises:
        InvalidParameterError: if ``time_quantum`` is below 1
    """
    time_quantum = validate_time_quantum(time_quantum)
    tasks = _eligible(tasks)

    queue = deque(_QueuedTask(task=task, remaining=task.estimated_duration) for task in tasks)
    entries = []
    cursor = next_working_instant(now, hours)

    while queue:
        current = queue.popleft()
        run = min(current.remaining, time_quantum)
        remaining = current.remaining - run

        start, end = place_duration(cursor, run, hours)
        entries.append(ScheduleEntry(
            task=current.task,
            start_time=start,
            end_time=end,
            algorithm=ROUND_ROBIN,
            quantum=run,
            is_complete=remaining <= 0
        ))
        cursor = end

        if remaining > 0:
            queue.append(_QueuedTask(task=current.task, remaining=remaining))

    return _build_result(ROUND_ROBIN, entries, tasks)


def priority_scheduling(
    tasks: Sequence[Task],
    hours: WorkingHours,
    now: datetime
) -> ScheduleResult:
    """
    Schedule tasks by descending combined weight.

    Tasks with equal weight are ordered by the earlier due date; remaining
    ties keep their input order.
    """
    tasks = _eligible(tasks)
    weights = {id(task): get_scheduling_weight(task, now) for task in tasks}
    ordered = sorted(
        tasks,
        key=lambda t: (-weights[id(t)].combined_weight, t.due_date)
    )

    def make_entry(task, start, end):
        weight = weights[id(task)]
        return ScheduleEntry(
            task=task,
            start_time=start,
            end_time=end,
            algorithm=PRIORITY,
            priority=task.priority,
            urgency=weight.urgency,
            weight=weight
        )

    entries = _place_in_order(ordered, hours, now, make_entry)
    return _build_result(PRIORITY, entries, tasks)


# Iteration order doubles as the recommendation tie-break order
ALGORITHMS: Dict[str, Callable[..., ScheduleResult]] = {
    SJF: shortest_job_first,
    ROUND_ROBIN: round_robin,
    PRIORITY: priority_scheduling,
}

ALGORITHM_DESCRIPTIONS = {
    SJF: 'Shortest Job First: runs the quickest tasks first to minimize average wait time',
    ROUND_ROBIN: 'Round Robin: gives every task a fixed time slice in turn for balanced progress',
    PRIORITY: 'Priority: ranks tasks by priority, urgency and duration to meet deadlines',
}


def schedule_tasks(
    tasks: Sequence[Task],
    algorithm: str,
    hours: Optional[WorkingHours] = None,
    now: Optional[datetime] = None,
    time_quantum: int = DEFAULT_TIME_QUANTUM
) -> ScheduleResult:
    """
    Run one algorithm over a task set.

    Args:
        tasks: Task views; only pending and in-progress tasks are placed
        algorithm: One of 'SJF', 'RoundRobin', 'Priority'
        hours: Working hours (defaults to 09:00-17:00)
        now: Reference instant the schedule starts from (required)
        time_quantum: Round-Robin slice in minutes

    Raises:
        InvalidAlgorithmError: unknown algorithm tag
        InvalidParameterError: ``time_quantum`` below 1 or ``now`` missing
    """
    if algorithm not in ALGORITHMS:
        raise InvalidAlgorithmError(
            f"Invalid algorithm: {algorithm}. Valid options: {list(ALGORITHMS)}",
            field='algorithm'
        )
    validate_time_quantum(time_quantum)
    if now is None:
        raise InvalidParameterError("A reference time 'now' is required", field='now')

    hours = hours or DEFAULT_WORKING_HOURS

    if not _eligible(tasks):
        return ScheduleResult(algorithm=algorithm)

    if algorithm == ROUND_ROBIN:
        return ALGORITHMS[algorithm](tasks, hours, now, time_quantum=time_quantum)
    return ALGORITHMS[algorithm](tasks, hours, now)
