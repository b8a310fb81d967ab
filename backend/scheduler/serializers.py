"""
Serializers for scheduling requests.

This module validates incoming task records and scheduling options before
they are turned into engine inputs. Tasks are never persisted; they arrive
with the request and leave with the response.
"""

from rest_framework import serializers

from .algorithms import ALGORITHMS
from .errors import InvalidWorkingHoursError
from .scoring import MAX_PRIORITY, MIN_PRIORITY, TaskCategory, TaskStatus
from .working_hours import WorkingHours

DUPLICATE_TASK_ID = 'duplicate_task_id'

CLOCK_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'

# One year of work per task, ten years of analytics history
MAX_ESTIMATED_DURATION = 60 * 24 * 365
MAX_ANALYTICS_DAYS = 3650


class TaskInputSerializer(serializers.Serializer):
    """
    Serializer for validating one incoming task record.
    """

    id = serializers.CharField(max_length=64, required=False, allow_null=True)
    title = serializers.CharField(max_length=200, required=True)
    priority = serializers.IntegerField(
        min_value=MIN_PRIORITY,
        max_value=MAX_PRIORITY,
        default=3
    )
    estimated_duration = serializers.IntegerField(
        min_value=1,
        max_value=MAX_ESTIMATED_DURATION,
        required=True,
        help_text="Estimated minutes of work (1 minute to one year)"
    )
    due_date = serializers.DateTimeField(required=True)
    status = serializers.ChoiceField(
        choices=[status.value for status in TaskStatus],
        default=TaskStatus.PENDING.value
    )
    category = serializers.ChoiceField(
        choices=[category.value for category in TaskCategory],
        default=TaskCategory.OTHER.value
    )
    completed_at = serializers.DateTimeField(required=False, allow_null=True)
    actual_time_spent = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    scheduled_algorithm = serializers.ChoiceField(
        choices=list(ALGORITHMS),
        required=False,
        allow_null=True
    )

    def validate_title(self, value):
        """Ensure title is not empty or just whitespace."""
        if not value or not value.strip():
            raise serializers.ValidationError("Title cannot be empty")
        return value.strip()


class WorkingHoursSerializer(serializers.Serializer):
    """Daily working window, e.g. {"start": "09:00", "end": "17:00"}."""

    start = serializers.RegexField(CLOCK_PATTERN, error_messages={'invalid': 'Use HH:MM format'})
    end = serializers.RegexField(CLOCK_PATTERN, error_messages={'invalid': 'Use HH:MM format'})

    def validate(self, attrs):
        try:
            WorkingHours.from_strings(attrs['start'], attrs['end'])
        except InvalidWorkingHoursError as e:
            raise serializers.ValidationError(e.message)
        return attrs


class TaskListSerializer(serializers.Serializer):
    """
    Base serializer for requests carrying a task set.

    An empty task set is valid: it yields an empty schedule.
    """

    tasks = serializers.ListField(child=TaskInputSerializer(), allow_empty=True)
    now = serializers.DateTimeField(
        required=False,
        help_text="Reference time the schedule starts from (defaults to the server time)"
    )

    def validate_tasks(self, value):
        """Reject task sets that reuse an ID."""
        seen_ids = set()
        for task in value:
            task_id = task.get('id')
            if task_id is None:
                continue
            if task_id in seen_ids:
                raise serializers.ValidationError(
                    f"Duplicate task ID: {task_id}", code=DUPLICATE_TASK_ID
                )
            seen_ids.add(task_id)
        return value


class CompareRequestSerializer(TaskListSerializer):
    """
    Serializer for comparing all algorithms on one task set.

    ``time_quantum`` is range-checked by the engine so that the caller gets
    the engine's error code.
    """

    working_hours = WorkingHoursSerializer(required=False)
    time_quantum = serializers.IntegerField(required=False)


class ScheduleRequestSerializer(CompareRequestSerializer):
    """Serializer for scheduling a task set with a single algorithm."""

    algorithm = serializers.CharField(
        help_text=f"One of: {', '.join(ALGORITHMS)}"
    )


class AnalyticsRequestSerializer(TaskListSerializer):
    """Serializer for completion analytics over completed tasks."""

    days = serializers.IntegerField(
        min_value=1,
        max_value=MAX_ANALYTICS_DAYS,
        required=False,
        default=30
    )
