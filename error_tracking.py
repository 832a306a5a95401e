"""Error tracking service for monitoring and logging errors."""
import logging
import traceback
from datetime import datetime
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from collections import deque

logger = logging.getLogger(__name__)


@dataclass
class ErrorEntry:
    """Represents a tracked error."""
    timestamp: datetime
    error_type: str
    message: str
    category: Optional[str] = None
    traceback: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = None


class ErrorTracker:
    """Service for tracking and analyzing application errors."""

    def __init__(self, max_errors: int = 1000):
        """Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: deque = deque(maxlen=max_errors)
        self.error_counts: Dict[str, int] = {}
        self.error_rate_window: deque = deque(maxlen=100)  # Last 100 requests

    def track_error(self,
                    error: Exception,
                    context: Optional[Dict[str, Any]] = None,
                    user_id: Optional[str] = None,
                    endpoint: Optional[str] = None,
                    method: Optional[str] = None,
                    status_code: Optional[int] = None) -> None:
        """Track an error occurrence.

        Args:
            error: The exception that occurred
            context: Additional context about the error
            user_id: Identity of the user who encountered the error
            endpoint: API endpoint where error occurred
            method: HTTP method
            status_code: Status the error was reported with
        """
        error_type = type(error).__name__
        category = getattr(error, 'category', None)

        entry = ErrorEntry(
            timestamp=datetime.utcnow(),
            error_type=error_type,
            message=str(error),
            category=category.value if category is not None else None,
            traceback=''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            context=context or {},
            user_id=user_id,
            endpoint=endpoint,
            method=method,
            status_code=status_code
        )

        self.errors.append(entry)
        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

        logger.error(f"Error tracked: {error_type} - {error}", extra={
            'error_type': error_type,
            'user_id': user_id,
            'endpoint': endpoint,
            'context': context
        })

    def track_request(self, success: bool = True) -> None:
        """Track a request for error rate calculation."""
        self.error_rate_window.append(not success)

    def get_error_rate(self) -> float:
        """Get current error rate as a percentage (0-100)."""
        if not self.error_rate_window:
            return 0.0

        error_count = sum(1 for is_error in self.error_rate_window if is_error)
        return (error_count / len(self.error_rate_window)) * 100

    def get_recent_errors(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent errors, newest first."""
        recent_errors = list(self.errors)[-limit:]
        return [self._error_to_dict(error) for error in reversed(recent_errors)]

    def get_error_summary(self) -> Dict[str, Any]:
        """Get error tracking summary.

        Returns:
            Summary statistics about errors
        """
        top_errors = sorted(
            self.error_counts.items(),
            key=lambda x: x[1],
            reverse=True
        )[:10]

        endpoint_errors: Dict[str, int] = {}
        for error in self.errors:
            if error.endpoint:
                endpoint_errors[error.endpoint] = endpoint_errors.get(error.endpoint, 0) + 1

        top_endpoints = sorted(
            endpoint_errors.items(),
            key=lambda x: x[1],
            reverse=True
        )[:10]

        return {
            'total_errors': len(self.errors),
            'error_rate_percent': round(self.get_error_rate(), 2),
            'top_error_types': [
                {'type': error_type, 'count': count}
                for error_type, count in top_errors
            ],
            'top_error_endpoints': [
                {'endpoint': endpoint, 'count': count}
                for endpoint, count in top_endpoints
            ],
            'tracking_window_size': self.max_errors
        }

    def _error_to_dict(self, error: ErrorEntry) -> Dict[str, Any]:
        return {
            'timestamp': error.timestamp.isoformat(),
            'error_type': error.error_type,
            'category': error.category,
            'message': error.message,
            'context': error.context,
            'user_id': error.user_id,
            'endpoint': error.endpoint,
            'method': error.method,
            'status_code': error.status_code
        }


# Global error tracker instance
error_tracker = ErrorTracker()


def track_error(error: Exception, **kwargs) -> None:
    """Convenience function to track errors."""
    error_tracker.track_error(error, **kwargs)


def get_error_summary() -> Dict[str, Any]:
    """Get error tracking summary."""
    return error_tracker.get_error_summary()
