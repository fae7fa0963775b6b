"""
Error handling and user feedback for the planning conversation.

This module defines the planning exceptions raised by mutators and
classifies any failure into a structured ErrorInfo so that every
turn still ends with one agent message.
"""

import json
import logging
from typing import Dict, Any, Optional
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""
    USER_ERROR = "user_error"
    REFERENCE_ERROR = "reference_error"
    UNSUPPORTED_CHANNEL = "unsupported_channel"
    STATE_ERROR = "state_error"
    DATA_ERROR = "data_error"
    SYSTEM_ERROR = "system_error"


class PlanningError(Exception):
    """Base class for errors a command can surface to the user."""
    category = ErrorCategory.USER_ERROR

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class InvalidAmountError(PlanningError):
    """Raised for zero, negative or unparseable money amounts."""
    category = ErrorCategory.USER_ERROR


class RowNotFoundError(PlanningError):
    """Raised when a 1-based row number does not exist in the plan."""
    category = ErrorCategory.REFERENCE_ERROR

    def __init__(self, row: int, user_message: Optional[str] = None):
        super().__init__(
            f"Row {row} does not exist",
            user_message or f"I couldn't find Row #{row}. Please check the table and try again."
        )
        self.row = row


class NoActivePlanError(PlanningError):
    """Raised when a plan-editing command arrives before any plan exists."""
    category = ErrorCategory.STATE_ERROR

    def __init__(self):
        super().__init__(
            "No active plan",
            "I need an active media plan for that. Tell me the client name and budget to get started."
        )


class UnsupportedChannelError(PlanningError):
    """Raised when a requested channel is on the denylist."""
    category = ErrorCategory.UNSUPPORTED_CHANNEL


@dataclass
class ErrorInfo:
    """Structured error information."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class ErrorHandler:
    """
    Centralized error handling for conversation turns.

    Converts planning exceptions into user-facing text and keeps a
    bounded history of recent errors for monitoring.
    """

    def __init__(self):
        self.error_history = []

    def handle_planning_error(self, error: PlanningError, context: str = "") -> ErrorInfo:
        """
        Handle an expected planning error raised by a command.

        Args:
            error: The planning exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        return ErrorInfo(
            category=error.category,
            severity=ErrorSeverity.WARNING,
            message=f"Planning error in {context}: {str(error)}",
            user_message=error.user_message,
            suggested_action="Type 'help' to see what I can do."
        )

    def handle_data_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle storage errors (missing or unreadable session files).

        Args:
            error: The data exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        error_str = str(error).lower()

        if isinstance(error, FileNotFoundError) or "no such file" in error_str:
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Session file not found: {str(error)}",
                user_message="I couldn't find a saved session to load.",
                suggested_action="Start a new session by telling me the client and budget."
            )

        elif isinstance(error, PermissionError) or "permission denied" in error_str:
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"File permission error: {str(error)}",
                user_message="I couldn't access the session storage folder.",
                suggested_action="Check the SESSION_CACHE_DIR permissions."
            )

        return ErrorInfo(
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Data error in {context}: {str(error)}",
            user_message="Something went wrong reading or writing session data.",
            technical_details=str(error)
        )

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Classify an error and return appropriate ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        try:
            if isinstance(error, PlanningError):
                return self.handle_planning_error(error, context)

            elif isinstance(error, (FileNotFoundError, PermissionError, IOError)):
                return self.handle_data_error(error, context)

            elif isinstance(error, json.JSONDecodeError):
                return self.handle_data_error(error, context)

            # Generic system error
            return ErrorInfo(
                category=ErrorCategory.SYSTEM_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Unexpected error in {context}: {str(error)}",
                user_message="Sorry, something went wrong handling that request. Your plan is unchanged.",
                technical_details=str(error),
                suggested_action="Try rephrasing the request, or type 'help'."
            )

        except Exception as e:
            logger.error(f"Error in error classification: {str(e)}")
            return ErrorInfo(
                category=ErrorCategory.SYSTEM_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"Critical error in error handling: {str(e)}",
                user_message="Sorry, something went wrong handling that request. Your plan is unchanged."
            )

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Log error information for monitoring and debugging.

        Args:
            error_info: Structured error information
            context: Additional context
        """
        self.error_history.append(error_info)

        # Keep only recent errors (last 100)
        if len(self.error_history) > 100:
            self.error_history = self.error_history[-100:]

        log_message = f"{context}: {error_info.message}"

        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Get error statistics for monitoring.

        Returns:
            Dictionary with error statistics
        """
        if not self.error_history:
            return {'total_errors': 0}

        category_counts = {}
        severity_counts = {}

        recent_errors = [
            err for err in self.error_history
            if err.timestamp > datetime.now() - timedelta(hours=24)
        ]

        for error in recent_errors:
            category_counts[error.category.value] = category_counts.get(error.category.value, 0) + 1
            severity_counts[error.severity.value] = severity_counts.get(error.severity.value, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent_errors),
            'category_breakdown': category_counts,
            'severity_breakdown': severity_counts
        }


# Global error handler instance
error_handler = ErrorHandler()
