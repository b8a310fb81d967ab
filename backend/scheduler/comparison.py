"""
Algorithm comparison and recommendation.

Runs every scheduling algorithm over the same task set and picks the one
whose metrics score best:

score = (on_time_completion * 0.4) +
        (utilization_rate * 0.3) +
        ((100 - average_wait_time) * 0.2) +
        ((100 - average_turnaround_time) * 0.1)

One algorithm failing never aborts the comparison; its slot carries an
AlgorithmFailure instead of a ScheduleResult.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Sequence, Union
import logging

from .algorithms import (
    ALGORITHMS,
    DEFAULT_TIME_QUANTUM,
    PRIORITY,
    ROUND_ROBIN,
    SJF,
    ScheduleResult,
    schedule_tasks,
    validate_time_quantum,
)
from .errors import ErrorCode, InvalidParameterError
from .metrics import ScheduleMetrics
from .scoring import Task
from .working_hours import WorkingHours

logger = logging.getLogger(__name__)


ON_TIME_WEIGHT = 0.4
UTILIZATION_WEIGHT = 0.3
WAIT_WEIGHT = 0.2
TURNAROUND_WEIGHT = 0.1

NO_RECOMMENDATION = "No recommendation available"


@dataclass(frozen=True)
class AlgorithmFailure:
    """Marker left in a comparison for an algorithm that raised."""
    algorithm: str
    error: str

    def to_dict(self) -> Dict:
        return {
            'algorithm': self.algorithm,
            'error': self.error,
            'error_code': ErrorCode.ERR_ALGORITHM_FAILED.value
        }


@dataclass(frozen=True)
class Recommendation:
    algorithm: Optional[str]
    score: float
    reason: str

    def to_dict(self) -> Dict:
        return {
            'algorithm': self.algorithm,
            'score': self.score,
            'reason': self.reason
        }


Comparison = Dict[str, Union[ScheduleResult, AlgorithmFailure]]


def compare_algorithms(
    tasks: Sequence[Task],
    hours: Optional[WorkingHours] = None,
    now: Optional[datetime] = None,
    time_quantum: int = DEFAULT_TIME_QUANTUM
) -> Comparison:
    """
    Run every algorithm over the same tasks.

    Caller mistakes (a bad time quantum, a missing ``now``) are raised
    before anything runs. Anything an individual algorithm raises afterwards
    is logged and recorded as that algorithm's AlgorithmFailure.
    """
    validate_time_quantum(time_quantum)
    if now is None:
        raise InvalidParameterError("A reference time 'now' is required", field='now')

    results: Comparison = {}
    for algorithm in ALGORITHMS:
        try:
            results[algorithm] = schedule_tasks(
                tasks, algorithm, hours=hours, now=now, time_quantum=time_quantum
            )
        except Exception as e:
            logger.exception("Algorithm %s failed during comparison", algorithm)
            results[algorithm] = AlgorithmFailure(algorithm=algorithm, error=str(e))

    return results


def score_metrics(metrics: ScheduleMetrics) -> float:
    """Composite score of a schedule's metrics (higher is better)."""
    return (
        metrics.on_time_completion * ON_TIME_WEIGHT +
        metrics.utilization_rate * UTILIZATION_WEIGHT +
        (100 - metrics.average_wait_time) * WAIT_WEIGHT +
        (100 - metrics.average_turnaround_time) * TURNAROUND_WEIGHT
    )


def explain_recommendation(algorithm: Optional[str], comparison: Comparison) -> str:
    """Explain why an algorithm is recommended."""
    result = comparison.get(algorithm) if algorithm else None
    if not isinstance(result, ScheduleResult):
        return NO_RECOMMENDATION

    metrics = result.metrics
    if algorithm == SJF:
        return (
            f"Best for minimizing average wait time ({metrics.average_wait_time} min) "
            f"and completing short tasks quickly"
        )
    if algorithm == ROUND_ROBIN:
        return (
            f"Best for fairness and balanced task execution with "
            f"{metrics.utilization_rate:.1f}% utilization rate"
        )
    if algorithm == PRIORITY:
        return (
            f"Best for deadline adherence with "
            f"{metrics.on_time_completion:.1f}% on-time completion rate"
        )
    return "Recommended based on overall performance metrics"


def recommend_algorithm(comparison: Comparison) -> Recommendation:
    """
    Pick the best-scoring algorithm of a comparison.

    Failed algorithms are skipped. On equal scores the algorithm that comes
    first in the comparison wins.
    """
    best_algorithm = None
    best_score = None

    for algorithm, result in comparison.items():
        if isinstance(result, AlgorithmFailure):
            continue
        score = score_metrics(result.metrics)
        if best_score is None or score > best_score:
            best_algorithm, best_score = algorithm, score

    recommendation = Recommendation(
        algorithm=best_algorithm,
        score=round(best_score, 1) if best_score is not None else 0.0,
        reason=explain_recommendation(best_algorithm, comparison)
    )
    logger.info(
        "Recommended %s with score %.1f", recommendation.algorithm, recommendation.score
    )
    return recommendation


def comparison_to_dict(comparison: Comparison) -> Dict:
    """Convert a comparison to a dictionary for JSON serialization."""
    return {algorithm: result.to_dict() for algorithm, result in comparison.items()}
