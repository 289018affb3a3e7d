"""
Trial result data structures
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime
from typing import Optional, List, Dict

from .matrix import TestCase


class TrialStatus(Enum):
    """Reconciled trial outcome"""
    SUCCEEDED_AS_EXPECTED = "succeeded_as_expected"
    FAILED_AS_EXPECTED = "failed_as_expected"
    MISMATCH = "mismatch"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass
class TrialResult:
    """Observed outcome of a single handshake trial"""
    case: TestCase
    server_exit_code: Optional[int] = None
    client_exit_code: Optional[int] = None
    client_started: bool = False
    status: TrialStatus = TrialStatus.ERROR
    duration: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    error_message: Optional[str] = None

    @property
    def observed_success(self) -> bool:
        return self.server_exit_code == 0 and self.client_exit_code == 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            'case': self.case.to_dict(),
            'server_exit_code': self.server_exit_code,
            'client_exit_code': self.client_exit_code,
            'client_started': self.client_started,
            'status': self.status.value,
            'duration': round(self.duration, 3),
            'timestamp': self.timestamp.isoformat(),
            'error_message': self.error_message
        }

    def __repr__(self):
        return f"TrialResult(#{self.case.index}: {self.status.value})"


@dataclass
class SuiteResult:
    """Aggregated results for a matrix run"""
    total_cases: int
    executed: int
    succeeded: int
    failed_as_expected: int
    mismatched: int
    timed_out: int
    errors: int
    total_duration: float
    results: List[TrialResult]
    completed: bool
    timestamp: datetime = field(default_factory=datetime.now)

    @staticmethod
    def from_results(total_cases: int, results: List[TrialResult], completed: bool) -> 'SuiteResult':
        """
        Create SuiteResult from a list of TrialResult objects

        Args:
            total_cases: Number of cases in the matrix that was run
            results: Results of the trials that were executed
            completed: False when the run was aborted

        Returns:
            SuiteResult object with aggregated statistics
        """
        return SuiteResult(
            total_cases=total_cases,
            executed=len(results),
            succeeded=sum(1 for r in results if r.status == TrialStatus.SUCCEEDED_AS_EXPECTED),
            failed_as_expected=sum(1 for r in results if r.status == TrialStatus.FAILED_AS_EXPECTED),
            mismatched=sum(1 for r in results if r.status == TrialStatus.MISMATCH),
            timed_out=sum(1 for r in results if r.status == TrialStatus.TIMEOUT),
            errors=sum(1 for r in results if r.status == TrialStatus.ERROR),
            total_duration=sum(r.duration for r in results),
            results=results,
            completed=completed
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            'timestamp': self.timestamp.isoformat(),
            'completed': self.completed,
            'summary': {
                'total': self.total_cases,
                'executed': self.executed,
                'succeeded_as_expected': self.succeeded,
                'failed_as_expected': self.failed_as_expected,
                'mismatch': self.mismatched,
                'timeout': self.timed_out,
                'error': self.errors
            },
            'total_duration': round(self.total_duration, 3),
            'results': [r.to_dict() for r in self.results]
        }

    def is_success(self) -> bool:
        """Check if every case ran and matched its prediction"""
        return self.completed and self.mismatched == 0 and self.timed_out == 0 and self.errors == 0

    def __repr__(self):
        return f"SuiteResult({self.executed}/{self.total_cases} executed, {self.mismatched} mismatched)"
