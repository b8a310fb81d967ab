"""
API Views for the Task Scheduler.

This module exposes the scheduling engine over REST. Views only translate
between request payloads and engine inputs; every scheduling decision is
made by the engine modules.
"""

from django.conf import settings
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, throttle_classes
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
import logging

from .algorithms import ALGORITHM_DESCRIPTIONS, ALGORITHMS, DEFAULT_TIME_QUANTUM, schedule_tasks
from .comparison import comparison_to_dict, compare_algorithms, recommend_algorithm
from .errors import ErrorCode, SchedulingError
from .metrics import completion_analytics, group_entries_by_date
from .scoring import is_overdue, task_from_dict
from .serializers import (
    DUPLICATE_TASK_ID,
    AnalyticsRequestSerializer,
    CompareRequestSerializer,
    ScheduleRequestSerializer,
)
from .working_hours import WorkingHours

logger = logging.getLogger(__name__)


# ============================================
# RATE LIMITING CLASSES
# ============================================

class ScheduleRateThrottle(AnonRateThrottle):
    """Rate limit for schedule endpoint - 30 requests per minute."""
    scope = 'schedule'
    rate = '30/min'


class CompareRateThrottle(AnonRateThrottle):
    """Rate limit for compare endpoint - 30 requests per minute."""
    scope = 'compare'
    rate = '30/min'


class AnalyticsRateThrottle(AnonRateThrottle):
    """Rate limit for analytics endpoint - 10 requests per minute."""
    scope = 'analytics'
    rate = '10/min'


# ============================================
# REQUEST HELPERS
# ============================================

def _invalid_input(serializer) -> Response:
    task_errors = serializer.errors.get('tasks', [])
    duplicate = any(getattr(error, 'code', None) == DUPLICATE_TASK_ID for error in task_errors)
    error_code = ErrorCode.ERR_DUPLICATE_TASK_ID if duplicate else ErrorCode.ERR_MISSING_FIELD

    logger.warning("Rejected scheduling request: %s", dict(serializer.errors))
    return Response(
        {
            'success': False,
            'error_code': error_code.value,
            'errors': serializer.errors,
            'message': 'Invalid input data. Please check your tasks format.'
        },
        status=status.HTTP_400_BAD_REQUEST
    )


def _scheduling_error(error: SchedulingError) -> Response:
    logger.warning("Scheduling request failed: %s", error.message)
    return Response(
        {'success': False, **error.to_dict()},
        status=status.HTTP_400_BAD_REQUEST
    )


def _reference_time(validated_data):
    return timezone.localtime(validated_data.get('now') or timezone.now())


def _configured_working_hours() -> WorkingHours:
    config = settings.SCHEDULER
    return WorkingHours.from_strings(config['WORKING_HOURS_START'], config['WORKING_HOURS_END'])


def _working_hours(validated_data) -> WorkingHours:
    hours = validated_data.get('working_hours')
    if hours:
        return WorkingHours.from_strings(hours['start'], hours['end'])
    return _configured_working_hours()


def _time_quantum(validated_data) -> int:
    return validated_data.get(
        'time_quantum', settings.SCHEDULER.get('TIME_QUANTUM', DEFAULT_TIME_QUANTUM)
    )


# ============================================
# API ENDPOINTS
# ============================================

@extend_schema(
    summary="Schedule tasks with one algorithm",
    description="""
    Place a task set on the calendar with SJF, RoundRobin or Priority
    scheduling inside working hours, and report the schedule's metrics.
    """,
    request=ScheduleRequestSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Scheduling']
)
@api_view(['POST'])
@throttle_classes([ScheduleRateThrottle])
def schedule(request: Request) -> Response:
    """
    Schedule tasks with a specific algorithm.

    POST /api/schedule/

    Request Body:
    {
        "algorithm": "SJF",                                  // SJF | RoundRobin | Priority
        "tasks": [...],
        "working_hours": {"start": "09:00", "end": "17:00"}, // Optional
        "time_quantum": 60,                                  // Optional, RoundRobin only
        "now": "2024-01-01T08:00:00"                         // Optional
    }
    """
    serializer = ScheduleRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_input(serializer)

    data = serializer.validated_data
    tasks = [task_from_dict(task) for task in data['tasks']]
    now = _reference_time(data)

    try:
        result = schedule_tasks(
            tasks,
            data['algorithm'],
            hours=_working_hours(data),
            now=now,
            time_quantum=_time_quantum(data)
        )
    except SchedulingError as e:
        return _scheduling_error(e)

    by_date = {
        day: [entry.to_dict() for entry in entries]
        for day, entries in group_entries_by_date(result.entries).items()
    }

    return Response({
        'success': True,
        'error_code': ErrorCode.SUCCESS.value,
        'message': 'Tasks scheduled successfully' if result.entries else 'No tasks to schedule',
        'schedule': result.to_dict(),
        'schedule_by_date': by_date,
        'overdue_tasks': [task.id for task in tasks if is_overdue(task, now)]
    })


@extend_schema(
    summary="Compare all scheduling algorithms",
    description="""
    Run every algorithm over the same task set and recommend the one with
    the best combination of on-time completion, utilization, wait time and
    turnaround time.
    """,
    request=CompareRequestSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Scheduling']
)
@api_view(['POST'])
@throttle_classes([CompareRateThrottle])
def compare(request: Request) -> Response:
    """
    Compare all algorithms.

    POST /api/schedule/compare/
    """
    serializer = CompareRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_input(serializer)

    data = serializer.validated_data
    tasks = [task_from_dict(task) for task in data['tasks']]

    try:
        comparison = compare_algorithms(
            tasks,
            hours=_working_hours(data),
            now=_reference_time(data),
            time_quantum=_time_quantum(data)
        )
    except SchedulingError as e:
        return _scheduling_error(e)

    return Response({
        'success': True,
        'error_code': ErrorCode.SUCCESS.value,
        'comparison': comparison_to_dict(comparison),
        'recommendation': recommend_algorithm(comparison).to_dict(),
        'task_count': len(tasks)
    })


@extend_schema(
    summary="Scheduling analytics",
    description="Estimation accuracy, on-time rate and algorithm usage over recently completed tasks.",
    request=AnalyticsRequestSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Analytics']
)
@api_view(['POST'])
@throttle_classes([AnalyticsRateThrottle])
def analytics(request: Request) -> Response:
    """
    Summarize completed tasks.

    POST /api/schedule/analytics/
    """
    serializer = AnalyticsRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_input(serializer)

    data = serializer.validated_data
    tasks = [task_from_dict(task) for task in data['tasks']]

    try:
        summary = completion_analytics(tasks, _reference_time(data), days=data['days'])
    except SchedulingError as e:
        return _scheduling_error(e)

    return Response({
        'success': True,
        'error_code': ErrorCode.SUCCESS.value,
        'analytics': summary,
        'period': f"{data['days']} days"
    })


@extend_schema(
    summary="Get available algorithms",
    description="Return the scheduling algorithms and the default scheduling options.",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Info']
)
@api_view(['GET'])
def get_algorithms(request: Request) -> Response:
    """
    Return available scheduling algorithms.

    GET /api/algorithms/
    """
    return Response({
        'success': True,
        'algorithms': {
            name: {
                'name': name,
                'description': ALGORITHM_DESCRIPTIONS[name],
                'preemptive': name == 'RoundRobin'
            }
            for name in ALGORITHMS
        },
        'defaults': {
            'working_hours': _configured_working_hours().to_dict(),
            'time_quantum': settings.SCHEDULER.get('TIME_QUANTUM', DEFAULT_TIME_QUANTUM)
        }
    })


@extend_schema(
    summary="API information",
    description="Get API information and available endpoints.",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Info']
)
@api_view(['GET'])
def api_info(request: Request) -> Response:
    """
    Return API information and available endpoints.

    GET /api/
    """
    return Response({
        'name': 'AlgoTasker Scheduling API',
        'version': '1.0.0',
        'documentation': '/api/docs/',
        'endpoints': {
            'POST /api/schedule/': 'Schedule tasks with one algorithm',
            'POST /api/schedule/compare/': 'Compare all algorithms and get a recommendation',
            'POST /api/schedule/analytics/': 'Analyze completed tasks',
            'GET /api/algorithms/': 'Get available algorithms',
            'GET /api/docs/': 'Interactive API documentation',
            'GET /api/schema/': 'OpenAPI schema',
            'GET /api/': 'This info endpoint'
        },
        'algorithms': list(ALGORITHMS),
        'error_codes': {
            code.value: code.name for code in ErrorCode
        }
    })
