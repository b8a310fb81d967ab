"""
Unit Tests for the Task Scheduler.

This module contains tests for the working-hours calculator, urgency and
weight scoring, the three scheduling algorithms, schedule metrics, the
algorithm comparison, completion analytics and the API endpoints.
"""

from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APITestCase
from rest_framework import status
from datetime import datetime, time, timedelta
from unittest import mock
import json

from .algorithms import (
    ALGORITHMS,
    PRIORITY,
    ROUND_ROBIN,
    SJF,
    ScheduleResult,
    priority_scheduling,
    round_robin,
    schedule_tasks,
    shortest_job_first,
)
from .comparison import (
    NO_RECOMMENDATION,
    AlgorithmFailure,
    compare_algorithms,
    recommend_algorithm,
)
from .errors import InvalidAlgorithmError, InvalidParameterError, InvalidWorkingHoursError
from .metrics import ScheduleMetrics, calculate_metrics, completion_analytics, group_entries_by_date
from .scoring import (
    Task,
    TaskStatus,
    calculate_combined_weight,
    calculate_urgency,
    get_scheduling_weight,
    is_overdue,
    task_from_dict,
)
from .working_hours import DEFAULT_WORKING_HOURS, WorkingHours, next_working_instant, place_duration


# 2024-01-01 is a Monday
MONDAY_8AM = datetime(2024, 1, 1, 8, 0)
MONDAY_9AM = datetime(2024, 1, 1, 9, 0)
TUESDAY_9AM = datetime(2024, 1, 2, 9, 0)


def make_task(task_id, duration, priority=3, due=None, status=TaskStatus.PENDING):
    return Task(
        id=task_id,
        title=f'Task {task_id}',
        priority=priority,
        estimated_duration=duration,
        due_date=due or MONDAY_8AM + timedelta(days=7),
        status=status
    )


def example_tasks():
    """Three pending tasks from the Monday 08:00 scenario."""
    return [
        make_task('A', 120, priority=3, due=MONDAY_8AM + timedelta(days=2)),
        make_task('B', 30, priority=5, due=MONDAY_8AM + timedelta(days=1)),
        make_task('C', 480, priority=1, due=MONDAY_8AM + timedelta(days=7)),
    ]


class WorkingHoursTests(TestCase):
    """Tests for the working-hours calculator."""

    def setUp(self):
        self.hours = WorkingHours.from_strings("09:00", "17:00")

    def test_before_start_snaps_to_opening(self):
        """Instants before opening move to that day's opening."""
        self.assertEqual(next_working_instant(datetime(2024, 1, 1, 7, 30), self.hours), MONDAY_9AM)

    def test_inside_window_unchanged(self):
        """Instants inside the window are returned as-is."""
        instant = datetime(2024, 1, 1, 12, 15, 30)
        self.assertEqual(next_working_instant(instant, self.hours), instant)

    def test_exactly_at_close_rolls_to_next_day(self):
        """Closing time itself counts as outside the window."""
        self.assertEqual(next_working_instant(datetime(2024, 1, 1, 17, 0), self.hours), TUESDAY_9AM)

    def test_after_close_rolls_to_next_day(self):
        """Evening instants move to the next opening with seconds cleared."""
        result = next_working_instant(datetime(2024, 1, 1, 22, 45, 10, 500), self.hours)
        self.assertEqual(result, TUESDAY_9AM)

    def test_rolls_over_month_end(self):
        """Rolling to the next day works across month boundaries."""
        result = next_working_instant(datetime(2024, 1, 31, 18, 0), self.hours)
        self.assertEqual(result, datetime(2024, 2, 1, 9, 0))

    def test_place_duration_within_day(self):
        start, end = place_duration(datetime(2024, 1, 1, 10, 0), 90, self.hours)
        self.assertEqual(start, datetime(2024, 1, 1, 10, 0))
        self.assertEqual(end, datetime(2024, 1, 1, 11, 30))

    def test_place_duration_ending_exactly_at_close(self):
        """Work that ends exactly at closing time stays on that day."""
        start, end = place_duration(datetime(2024, 1, 1, 16, 0), 60, self.hours)
        self.assertEqual(end, datetime(2024, 1, 1, 17, 0))

    def test_place_duration_spills_to_next_day(self):
        """Work that runs past closing resumes at the next opening."""
        start, end = place_duration(datetime(2024, 1, 1, 16, 30), 90, self.hours)
        self.assertEqual(start, datetime(2024, 1, 1, 16, 30))
        self.assertEqual(end, datetime(2024, 1, 2, 10, 0))

    def test_place_duration_spans_several_days(self):
        """Durations longer than a working day keep spilling over."""
        start, end = place_duration(MONDAY_9AM, 1000, self.hours)
        self.assertEqual(start, MONDAY_9AM)
        # 480 on Monday, 480 on Tuesday, 40 on Wednesday
        self.assertEqual(end, datetime(2024, 1, 3, 9, 40))

    def test_place_duration_whole_days_end_at_close(self):
        """Work that exactly fills the following day ends at its closing time."""
        start, end = place_duration(MONDAY_9AM, 960, self.hours)
        self.assertEqual(end, datetime(2024, 1, 2, 17, 0))

    def test_place_duration_year_of_work(self):
        """A year of minutes covers 1095 working days."""
        start, end = place_duration(MONDAY_9AM, 60 * 24 * 365, self.hours)
        self.assertEqual(end, datetime(2026, 12, 30, 17, 0))

    def test_place_duration_past_last_date_rejected(self):
        with self.assertRaises(InvalidParameterError):
            place_duration(MONDAY_9AM, 10 ** 10, self.hours)

    def test_no_working_day_after_last_date(self):
        with self.assertRaises(InvalidParameterError):
            next_working_instant(datetime(9999, 12, 31, 18, 0), self.hours)

    def test_place_duration_snaps_start(self):
        """A start outside working hours moves to the next opening first."""
        start, end = place_duration(datetime(2024, 1, 1, 18, 0), 30, self.hours)
        self.assertEqual(start, TUESDAY_9AM)
        self.assertEqual(end, datetime(2024, 1, 2, 9, 30))

    def test_start_after_end_rejected(self):
        with self.assertRaises(InvalidWorkingHoursError):
            WorkingHours.from_strings("17:00", "09:00")

    def test_malformed_clock_rejected(self):
        with self.assertRaises(InvalidWorkingHoursError):
            WorkingHours.from_strings("9am", "17:00")

    def test_default_working_hours(self):
        self.assertEqual(DEFAULT_WORKING_HOURS, WorkingHours(start=time(9, 0), end=time(17, 0)))
        self.assertEqual(DEFAULT_WORKING_HOURS.to_dict(), {'start': '09:00', 'end': '17:00'})


class UrgencyScoreTests(TestCase):
    """Tests for the urgency bucket rule."""

    def urgency_in(self, hours):
        return calculate_urgency(MONDAY_8AM + timedelta(hours=hours), MONDAY_8AM)

    def test_overdue_task_max_urgency(self):
        self.assertEqual(self.urgency_in(-1), 10)
        self.assertEqual(self.urgency_in(-500), 10)

    def test_due_within_a_day(self):
        self.assertEqual(self.urgency_in(0), 9)
        self.assertEqual(self.urgency_in(23.5), 9)

    def test_due_within_two_days(self):
        self.assertEqual(self.urgency_in(24), 8)
        self.assertEqual(self.urgency_in(47), 8)

    def test_due_within_a_week(self):
        self.assertEqual(self.urgency_in(48), 7)
        self.assertEqual(self.urgency_in(167), 7)

    def test_later_tasks_lose_a_point_per_week(self):
        self.assertEqual(self.urgency_in(168), 5)
        self.assertEqual(self.urgency_in(400), 4)

    def test_far_future_minimum_urgency(self):
        self.assertEqual(self.urgency_in(5000), 1)

    def test_urgency_never_increases_with_later_due_date(self):
        """Urgency is non-increasing as the due date moves later."""
        previous = self.urgency_in(-10)
        for hours in range(-5, 2000, 7):
            current = self.urgency_in(hours)
            self.assertLessEqual(current, previous)
            self.assertGreaterEqual(current, 1)
            previous = current


class SchedulingWeightTests(TestCase):
    """Tests for the combined weight and task helpers."""

    def test_combined_weight_formula(self):
        self.assertAlmostEqual(calculate_combined_weight(5, 9, 30), 11.6)

    def test_long_tasks_produce_negative_weight(self):
        """The weight is not clamped."""
        self.assertAlmostEqual(calculate_combined_weight(1, 1, 480), -83.2)

    def test_shorter_task_weighs_more_within_priority(self):
        self.assertGreater(
            calculate_combined_weight(3, 7, 15),
            calculate_combined_weight(3, 7, 90)
        )

    def test_get_scheduling_weight(self):
        task = make_task('B', 30, priority=5, due=MONDAY_8AM + timedelta(days=1))
        weight = get_scheduling_weight(task, MONDAY_8AM)

        self.assertEqual(weight.priority, 5)
        self.assertEqual(weight.urgency, 8)
        self.assertEqual(weight.estimated_duration, 30)
        self.assertAlmostEqual(weight.combined_weight, 11.2)

    def test_is_overdue(self):
        late = make_task('L', 30, due=MONDAY_8AM - timedelta(hours=1))
        done = make_task('D', 30, due=MONDAY_8AM - timedelta(hours=1), status=TaskStatus.COMPLETED)

        self.assertTrue(is_overdue(late, MONDAY_8AM))
        self.assertFalse(is_overdue(done, MONDAY_8AM))
        self.assertFalse(is_overdue(make_task('F', 30), MONDAY_8AM))

    def test_task_from_dict_parses_strings(self):
        task = task_from_dict({
            'id': 7,
            'title': 'Write report',
            'priority': 4,
            'estimated_duration': 45,
            'due_date': '2024-01-05T12:00:00',
            'status': 'in-progress'
        })

        self.assertEqual(task.due_date, datetime(2024, 1, 5, 12, 0))
        self.assertEqual(task.status, TaskStatus.IN_PROGRESS)
        self.assertTrue(task.is_schedulable)


class ShortestJobFirstTests(TestCase):
    """Tests for Shortest-Job-First scheduling."""

    def test_example_order_and_first_entry(self):
        result = shortest_job_first(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual([e.task.id for e in result.entries], ['B', 'A', 'C'])
        self.assertEqual(result.entries[0].start_time, MONDAY_9AM)
        self.assertEqual(result.entries[0].end_time, datetime(2024, 1, 1, 9, 30))
        self.assertEqual(result.algorithm, SJF)

    def test_long_task_spills_over_night(self):
        result = shortest_job_first(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)
        last = result.entries[-1]

        self.assertEqual(last.start_time, datetime(2024, 1, 1, 11, 30))
        self.assertEqual(last.end_time, datetime(2024, 1, 2, 11, 30))

    def test_durations_non_decreasing(self):
        tasks = [make_task(i, d) for i, d in enumerate([90, 15, 240, 15, 60, 5, 120])]
        result = shortest_job_first(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)
        durations = [e.task.estimated_duration for e in result.entries]

        self.assertEqual(durations, sorted(durations))

    def test_ties_keep_input_order(self):
        tasks = [make_task('x', 30), make_task('y', 30), make_task('z', 30)]
        result = shortest_job_first(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual([e.task.id for e in result.entries], ['x', 'y', 'z'])

    def test_entries_are_back_to_back(self):
        result = shortest_job_first(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)
        for previous, current in zip(result.entries, result.entries[1:]):
            self.assertEqual(previous.end_time, current.start_time)

    def test_only_pending_and_in_progress_scheduled(self):
        tasks = [
            make_task('p', 30),
            make_task('i', 30, status=TaskStatus.IN_PROGRESS),
            make_task('c', 10, status=TaskStatus.COMPLETED),
            make_task('x', 10, status=TaskStatus.CANCELLED),
        ]
        result = shortest_job_first(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual([e.task.id for e in result.entries], ['p', 'i'])
        self.assertEqual(result.metrics.total_tasks, 2)


class RoundRobinTests(TestCase):
    """Tests for Round-Robin scheduling."""

    def setUp(self):
        self.result = round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=60)

    def test_example_rotation(self):
        self.assertEqual(
            [e.task.id for e in self.result.entries],
            ['A', 'B', 'C', 'A', 'C', 'C', 'C', 'C', 'C', 'C', 'C']
        )

    def test_short_task_finishes_in_one_slice(self):
        b_entries = [e for e in self.result.entries if e.task.id == 'B']

        self.assertEqual(len(b_entries), 1)
        self.assertEqual(b_entries[0].quantum, 30)
        self.assertTrue(b_entries[0].is_complete)

    def test_quanta_add_up_to_duration(self):
        """Slices of every task sum to its estimated duration."""
        for task in example_tasks():
            slices = [e.quantum for e in self.result.entries if e.task.id == task.id]
            self.assertEqual(sum(slices), task.estimated_duration)

    def test_only_last_slice_is_complete(self):
        for task in example_tasks():
            flags = [e.is_complete for e in self.result.entries if e.task.id == task.id]
            self.assertTrue(flags[-1])
            self.assertFalse(any(flags[:-1]))

    def test_slice_spills_over_night(self):
        ninth = self.result.entries[8]

        self.assertEqual(ninth.start_time, datetime(2024, 1, 1, 16, 30))
        self.assertEqual(ninth.end_time, datetime(2024, 1, 2, 9, 30))

    def test_conservation_with_odd_quantum(self):
        tasks = [make_task(i, d) for i, d in enumerate([7, 50, 23, 101])]
        result = round_robin(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=13)

        for task in tasks:
            slices = [e for e in result.entries if e.task.id == task.id]
            self.assertEqual(sum(e.quantum for e in slices), task.estimated_duration)
            self.assertTrue(all(e.quantum <= 13 for e in slices))

    def test_large_quantum_runs_each_task_once(self):
        result = round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=1000)

        self.assertEqual([e.task.id for e in result.entries], ['A', 'B', 'C'])
        self.assertTrue(all(e.is_complete for e in result.entries))

    def test_original_tasks_untouched(self):
        tasks = example_tasks()
        result = round_robin(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=60)

        self.assertIs(result.entries[0].task, tasks[0])
        self.assertEqual(tasks[0].estimated_duration, 120)

    def test_quantum_below_one_rejected(self):
        with self.assertRaises(InvalidParameterError):
            round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=0)

    def test_non_integer_quantum_rejected(self):
        with self.assertRaises(InvalidParameterError):
            round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=True)


class PrioritySchedulingTests(TestCase):
    """Tests for Priority scheduling."""

    def test_example_order(self):
        result = priority_scheduling(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)
        self.assertEqual([e.task.id for e in result.entries], ['B', 'A', 'C'])

    def test_entries_carry_weight_breakdown(self):
        result = priority_scheduling(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)
        first = result.entries[0]

        self.assertEqual(first.priority, 5)
        self.assertEqual(first.urgency, 8)
        self.assertAlmostEqual(first.weight.combined_weight, 11.2)
        self.assertEqual(first.algorithm, PRIORITY)

    def test_weights_non_increasing(self):
        tasks = [
            make_task(i, d, priority=p, due=MONDAY_8AM + timedelta(hours=h))
            for i, (d, p, h) in enumerate([
                (30, 1, 10), (240, 5, 300), (15, 3, -5), (60, 4, 30), (90, 2, 100), (45, 5, 1000)
            ])
        ]
        result = priority_scheduling(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)
        weights = [e.weight.combined_weight for e in result.entries]

        self.assertEqual(weights, sorted(weights, reverse=True))

    def test_equal_weight_earlier_due_first(self):
        """Ties on combined weight are broken by the earlier due date."""
        later = make_task('later', 30, due=MONDAY_8AM + timedelta(hours=120))
        sooner = make_task('sooner', 30, due=MONDAY_8AM + timedelta(hours=100))
        result = priority_scheduling([later, sooner], DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual([e.task.id for e in result.entries], ['sooner', 'later'])


class ScheduleContainmentTests(TestCase):
    """Every entry starts and ends inside working hours."""

    def test_entries_within_working_hours(self):
        hours = WorkingHours.from_strings("08:30", "12:15")
        tasks = [make_task(i, d, priority=(i % 5) + 1) for i, d in enumerate([200, 45, 17, 600, 90, 5])]
        now = datetime(2024, 1, 1, 11, 47)

        for algorithm in ALGORITHMS:
            result = schedule_tasks(tasks, algorithm, hours=hours, now=now, time_quantum=25)
            for entry in result.entries:
                self.assertGreaterEqual(entry.start_time.time(), hours.start)
                self.assertLess(entry.start_time.time(), hours.end)
                self.assertGreater(entry.end_time.time(), hours.start)
                self.assertLessEqual(entry.end_time.time(), hours.end)


class ScheduleTasksTests(TestCase):
    """Tests for the dispatching entry point."""

    def test_invalid_algorithm_rejected(self):
        with self.assertRaises(InvalidAlgorithmError):
            schedule_tasks(example_tasks(), 'FCFS', now=MONDAY_8AM)

    def test_invalid_quantum_rejected_for_any_algorithm(self):
        with self.assertRaises(InvalidParameterError):
            schedule_tasks(example_tasks(), SJF, now=MONDAY_8AM, time_quantum=0)

    def test_missing_reference_time_rejected(self):
        with self.assertRaises(InvalidParameterError):
            schedule_tasks(example_tasks(), SJF)

    def test_no_eligible_tasks_gives_empty_result(self):
        tasks = [make_task('c', 30, status=TaskStatus.COMPLETED)]
        result = schedule_tasks(tasks, PRIORITY, now=MONDAY_8AM)

        self.assertEqual(result, ScheduleResult(algorithm=PRIORITY))
        self.assertEqual(result.entries, ())
        self.assertEqual(result.metrics, ScheduleMetrics())

    def test_unrepresentable_end_rejected(self):
        """Work ending past the last representable date raises a scheduling error."""
        tasks = [make_task('huge', 10 ** 10)]
        for algorithm in ALGORITHMS:
            with self.assertRaises(InvalidParameterError):
                schedule_tasks(tasks, algorithm, now=MONDAY_8AM, time_quantum=10 ** 10)

    def test_defaults_to_nine_to_five(self):
        result = schedule_tasks(example_tasks(), SJF, now=datetime(2024, 1, 1, 6, 0))
        self.assertEqual(result.entries[0].start_time, MONDAY_9AM)

    def test_identical_inputs_identical_outputs(self):
        for algorithm in ALGORITHMS:
            first = schedule_tasks(example_tasks(), algorithm, now=MONDAY_8AM, time_quantum=45)
            second = schedule_tasks(example_tasks(), algorithm, now=MONDAY_8AM, time_quantum=45)
            self.assertEqual(first, second)
            self.assertEqual(first.to_dict(), second.to_dict())


class MetricsTests(TestCase):
    """Tests for schedule metrics."""

    def test_sjf_example_metrics(self):
        result = shortest_job_first(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual(result.metrics, ScheduleMetrics(
            total_tasks=3,
            scheduled_tasks=3,
            average_wait_time=60,
            average_turnaround_time=590,
            on_time_completion=100.0,
            utilization_rate=100.0
        ))
        self.assertEqual(result.total_span_minutes, 1590)

    def test_round_robin_example_metrics(self):
        result = round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=60)

        self.assertEqual(result.metrics.scheduled_tasks, 11)
        self.assertEqual(result.metrics.average_wait_time, 450)
        # 6540 / 11 = 594.5 rounds up
        self.assertEqual(result.metrics.average_turnaround_time, 595)
        self.assertEqual(result.metrics.utilization_rate, 100.0)

    def test_averages_round_up(self):
        tasks = [make_task('a', 1), make_task('b', 2)]
        result = shortest_job_first(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual(result.metrics.average_wait_time, 1)
        self.assertEqual(result.metrics.average_turnaround_time, 2)

    def test_late_task_lowers_on_time_rate(self):
        tasks = [
            make_task('late', 120, due=datetime(2024, 1, 1, 10, 0)),
            make_task('fine', 30),
        ]
        result = shortest_job_first(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual(result.metrics.on_time_completion, 50.0)

    def test_overnight_gap_lowers_utilization(self):
        """A full day followed by work the next morning leaves the night idle."""
        tasks = [make_task('day', 480), make_task('next', 60)]
        result = round_robin(tasks, DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=480)

        self.assertEqual(result.entries[1].start_time, TUESDAY_9AM)
        # 540 busy minutes over a 1500 minute span
        self.assertEqual(result.metrics.utilization_rate, 36.0)

    def test_percentages_within_bounds(self):
        tasks = [
            make_task(i, d, due=MONDAY_8AM + timedelta(hours=h))
            for i, (d, h) in enumerate([(300, 2), (45, 30), (500, 200), (10, -3)])
        ]
        for algorithm in ALGORITHMS:
            metrics = schedule_tasks(tasks, algorithm, now=MONDAY_8AM, time_quantum=40).metrics
            self.assertTrue(0 <= metrics.on_time_completion <= 100)
            self.assertTrue(0 <= metrics.utilization_rate <= 100)

    def test_empty_schedule_all_zero(self):
        metrics = calculate_metrics([], [])

        self.assertEqual(metrics.to_dict(), {
            'total_tasks': 0,
            'scheduled_tasks': 0,
            'average_wait_time': 0,
            'average_turnaround_time': 0,
            'on_time_completion': 0.0,
            'utilization_rate': 0.0
        })

    def test_group_entries_by_date(self):
        result = round_robin(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=60)
        groups = group_entries_by_date(result.entries)

        self.assertEqual(list(groups), ['2024-01-01', '2024-01-02'])
        self.assertEqual(len(groups['2024-01-01']), 9)
        self.assertEqual(len(groups['2024-01-02']), 2)


class ComparisonTests(TestCase):
    """Tests for comparing algorithms and recommending one."""

    def test_compare_runs_every_algorithm(self):
        comparison = compare_algorithms(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, 60)

        self.assertEqual(list(comparison), [SJF, ROUND_ROBIN, PRIORITY])
        for algorithm, result in comparison.items():
            self.assertIsInstance(result, ScheduleResult)
            self.assertEqual(result.algorithm, algorithm)

    def test_example_recommendation(self):
        """SJF and Priority tie on score; SJF comes first."""
        comparison = compare_algorithms(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, 60)
        recommendation = recommend_algorithm(comparison)

        self.assertEqual(recommendation.algorithm, SJF)
        self.assertEqual(recommendation.score, 29.0)
        self.assertEqual(
            recommendation.reason,
            "Best for minimizing average wait time (60 min) and completing short tasks quickly"
        )

    def test_empty_task_set(self):
        comparison = compare_algorithms([], DEFAULT_WORKING_HOURS, MONDAY_8AM)

        for algorithm in ALGORITHMS:
            self.assertEqual(comparison[algorithm].entries, ())
            self.assertEqual(comparison[algorithm].metrics, ScheduleMetrics())

        recommendation = recommend_algorithm(comparison)
        self.assertEqual(recommendation.algorithm, SJF)
        self.assertEqual(recommendation.score, 30.0)

    def test_failing_algorithm_is_isolated(self):
        def broken(*args, **kwargs):
            raise RuntimeError("queue exploded")

        with mock.patch.dict(ALGORITHMS, {ROUND_ROBIN: broken}):
            with self.assertLogs('scheduler.comparison', level='ERROR'):
                comparison = compare_algorithms(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM)

        self.assertEqual(comparison[ROUND_ROBIN], AlgorithmFailure(ROUND_ROBIN, "queue exploded"))
        self.assertIsInstance(comparison[SJF], ScheduleResult)
        self.assertIsInstance(comparison[PRIORITY], ScheduleResult)
        self.assertNotEqual(recommend_algorithm(comparison).algorithm, ROUND_ROBIN)

    def test_all_failed_gives_no_recommendation(self):
        comparison = {
            name: AlgorithmFailure(name, "boom") for name in ALGORITHMS
        }
        recommendation = recommend_algorithm(comparison)

        self.assertIsNone(recommendation.algorithm)
        self.assertEqual(recommendation.reason, NO_RECOMMENDATION)

    def test_priority_reason(self):
        strong = ScheduleMetrics(on_time_completion=100.0, utilization_rate=100.0)
        weak = ScheduleMetrics(average_wait_time=500, average_turnaround_time=900)
        comparison = {
            SJF: ScheduleResult(SJF, metrics=weak),
            ROUND_ROBIN: ScheduleResult(ROUND_ROBIN, metrics=weak),
            PRIORITY: ScheduleResult(PRIORITY, metrics=strong),
        }
        recommendation = recommend_algorithm(comparison)

        self.assertEqual(recommendation.algorithm, PRIORITY)
        self.assertEqual(recommendation.score, 100.0)
        self.assertEqual(
            recommendation.reason,
            "Best for deadline adherence with 100.0% on-time completion rate"
        )

    def test_round_robin_reason(self):
        comparison = {
            SJF: AlgorithmFailure(SJF, "boom"),
            ROUND_ROBIN: ScheduleResult(ROUND_ROBIN, metrics=ScheduleMetrics(utilization_rate=87.5)),
        }
        recommendation = recommend_algorithm(comparison)

        self.assertEqual(
            recommendation.reason,
            "Best for fairness and balanced task execution with 87.5% utilization rate"
        )

    def test_invalid_quantum_raised_before_running(self):
        with self.assertRaises(InvalidParameterError):
            compare_algorithms(example_tasks(), DEFAULT_WORKING_HOURS, MONDAY_8AM, time_quantum=-5)


class CompletionAnalyticsTests(TestCase):
    """Tests for analytics over completed tasks."""

    def setUp(self):
        self.now = datetime(2024, 1, 10, 12, 0)

        def done(task_id, estimated, actual, completed, due, algorithm=SJF):
            return Task(
                id=task_id,
                title=task_id,
                priority=3,
                estimated_duration=estimated,
                due_date=due,
                status=TaskStatus.COMPLETED,
                completed_at=completed,
                actual_time_spent=actual,
                scheduled_algorithm=algorithm
            )

        self.tasks = [
            done('over', 60, 90, datetime(2024, 1, 5), datetime(2024, 1, 6)),
            done('exact', 30, 30, datetime(2024, 1, 8), datetime(2024, 1, 7), algorithm=PRIORITY),
            done('untracked', 45, None, datetime(2024, 1, 9), datetime(2024, 1, 9, 18, 0)),
            done('old', 30, 30, datetime(2023, 10, 1), datetime(2023, 10, 2)),
            done('unscheduled', 30, 30, datetime(2024, 1, 9), datetime(2024, 1, 9), algorithm=None),
            make_task('open', 30),
        ]

    def test_counts_recent_scheduled_completions(self):
        summary = completion_analytics(self.tasks, self.now)

        self.assertEqual(summary['total_completed_tasks'], 3)
        self.assertEqual(summary['algorithm_usage'], {SJF: 2, PRIORITY: 1})

    def test_accuracy_and_on_time(self):
        summary = completion_analytics(self.tasks, self.now)

        # (50 + 100) over all three counted tasks
        self.assertEqual(summary['average_accuracy'], 50.0)
        self.assertEqual(summary['on_time_completion'], 66.7)

    def test_time_variance(self):
        summary = completion_analytics(self.tasks, self.now)

        self.assertEqual(summary['time_variance'], [
            {'task_id': 'over', 'estimated': 60, 'actual': 90, 'variance': 30},
            {'task_id': 'exact', 'estimated': 30, 'actual': 30, 'variance': 0},
        ])

    def test_no_completed_tasks(self):
        summary = completion_analytics([make_task('open', 30)], self.now)

        self.assertEqual(summary['total_completed_tasks'], 0)
        self.assertEqual(summary['average_accuracy'], 0.0)
        self.assertEqual(summary['on_time_completion'], 0.0)

    def test_invalid_period_rejected(self):
        with self.assertRaises(InvalidParameterError):
            completion_analytics(self.tasks, self.now, days=0)

    def test_window_before_first_date_rejected(self):
        with self.assertRaises(InvalidParameterError):
            completion_analytics(self.tasks, datetime(1, 1, 5), days=30)


class APIEndpointTests(APITestCase):
    """Tests for the API endpoints."""

    def setUp(self):
        cache.clear()
        self.tasks = [
            {'id': 'A', 'title': 'Task A', 'priority': 3, 'estimated_duration': 120,
             'due_date': '2024-01-03T08:00:00'},
            {'id': 'B', 'title': 'Task B', 'priority': 5, 'estimated_duration': 30,
             'due_date': '2024-01-02T08:00:00'},
            {'id': 'C', 'title': 'Task C', 'priority': 1, 'estimated_duration': 480,
             'due_date': '2024-01-08T08:00:00'},
        ]

    def post(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_schedule_endpoint_success(self):
        """POST /api/schedule/ should return the placed schedule."""
        response = self.post('/api/schedule/', {
            'algorithm': 'SJF',
            'tasks': self.tasks,
            'now': '2024-01-01T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])

        schedule = response.data['schedule']
        self.assertEqual([e['task']['id'] for e in schedule['schedule']], ['B', 'A', 'C'])
        self.assertEqual(schedule['schedule'][0]['start_time'], '2024-01-01T09:00:00+00:00')
        self.assertEqual(schedule['metrics']['average_wait_time'], 60)
        self.assertEqual(list(response.data['schedule_by_date']), ['2024-01-01'])

    def test_schedule_round_robin_with_quantum(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'RoundRobin',
            'tasks': self.tasks,
            'time_quantum': 60,
            'now': '2024-01-01T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entries = response.data['schedule']['schedule']
        self.assertEqual(len(entries), 11)
        self.assertIn('quantum', entries[0])
        self.assertIn('is_complete', entries[0])

    def test_schedule_custom_working_hours(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'Priority',
            'tasks': self.tasks,
            'working_hours': {'start': '10:00', 'end': '18:00'},
            'now': '2024-01-01T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        first = response.data['schedule']['schedule'][0]
        self.assertEqual(first['start_time'], '2024-01-01T10:00:00+00:00')
        self.assertIn('weight', first)

    def test_schedule_invalid_algorithm(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'FCFS',
            'tasks': self.tasks
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'ERR_INVALID_ALGORITHM')

    def test_schedule_invalid_quantum(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'RoundRobin',
            'tasks': self.tasks,
            'time_quantum': 0
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'ERR_INVALID_PARAMETER')

    def test_schedule_invalid_task(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'SJF',
            'tasks': [{'title': '', 'priority': 9, 'estimated_duration': 0}]
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'ERR_MISSING_FIELD')

    def test_schedule_duplicate_ids(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'SJF',
            'tasks': [self.tasks[0], self.tasks[0]]
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'ERR_DUPLICATE_TASK_ID')

    def test_schedule_invalid_working_hours(self):
        response = self.post('/api/schedule/', {
            'algorithm': 'SJF',
            'tasks': self.tasks,
            'working_hours': {'start': '17:00', 'end': '09:00'}
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_schedule_duration_above_limit(self):
        huge = dict(self.tasks[0], estimated_duration=10 ** 10)
        response = self.post('/api/schedule/', {'algorithm': 'SJF', 'tasks': [huge]})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tasks', response.data['errors'])

    def test_schedule_lists_overdue_tasks(self):
        late = {'id': 'late', 'title': 'Late task', 'estimated_duration': 30,
                'due_date': '2023-12-31T08:00:00'}
        response = self.post('/api/schedule/', {
            'algorithm': 'Priority',
            'tasks': self.tasks + [late],
            'now': '2024-01-01T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overdue_tasks'], ['late'])

    def test_schedule_without_eligible_tasks(self):
        """Completed tasks are skipped and an empty schedule is not an error."""
        completed = dict(self.tasks[0], status='completed')
        response = self.post('/api/schedule/', {'algorithm': 'SJF', 'tasks': [completed]})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['schedule']['schedule'], [])
        self.assertEqual(response.data['schedule']['metrics']['utilization_rate'], 0.0)
        self.assertEqual(response.data['message'], 'No tasks to schedule')

    def test_compare_endpoint(self):
        """POST /api/schedule/compare/ should compare and recommend."""
        response = self.post('/api/schedule/compare/', {
            'tasks': self.tasks,
            'now': '2024-01-01T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(response.data['comparison']), ['SJF', 'RoundRobin', 'Priority'])
        self.assertEqual(response.data['recommendation']['algorithm'], 'SJF')
        self.assertEqual(response.data['task_count'], 3)

    def test_compare_empty_task_set(self):
        response = self.post('/api/schedule/compare/', {'tasks': []})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for result in response.data['comparison'].values():
            self.assertEqual(result['schedule'], [])
            self.assertEqual(result['metrics']['on_time_completion'], 0.0)
        self.assertEqual(response.data['recommendation']['algorithm'], 'SJF')

    def test_analytics_endpoint(self):
        tasks = [
            dict(self.tasks[0], status='completed', completed_at='2024-01-02T12:00:00',
                 actual_time_spent=150, scheduled_algorithm='SJF'),
            self.tasks[1],
        ]
        response = self.post('/api/schedule/analytics/', {
            'tasks': tasks,
            'now': '2024-01-05T08:00:00'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['analytics']['total_completed_tasks'], 1)
        self.assertEqual(response.data['analytics']['average_accuracy'], 75.0)
        self.assertEqual(response.data['period'], '30 days')

    def test_analytics_period_above_limit(self):
        response = self.post('/api/schedule/analytics/', {'tasks': self.tasks, 'days': 10 ** 6})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('days', response.data['errors'])

    def test_algorithms_endpoint(self):
        response = self.client.get('/api/algorithms/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data['algorithms']), {'SJF', 'RoundRobin', 'Priority'})
        self.assertEqual(response.data['defaults']['time_quantum'], 60)
        self.assertEqual(
            response.data['defaults']['working_hours'], {'start': '09:00', 'end': '17:00'}
        )

    def test_api_info_endpoint(self):
        """GET /api/ should return API information."""
        response = self.client.get('/api/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('name', response.data)
        self.assertIn('endpoints', response.data)
        self.assertIn('ERR_INVALID_ALGORITHM', response.data['error_codes'])
