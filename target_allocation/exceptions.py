class AllocationError(Exception):
    """Base exception for the Target Allocation engine."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Target Allocation engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(AllocationError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(AllocationError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(AllocationError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class WeightValidationError(ValidationError):
    """Exception raised when a weight set cannot be used for allocation.

    ``details`` carries ``actual_sum``, ``tolerance`` and ``dimension``.
    """

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invalid weights"
        super().__init__(message, code or 'WEIGHT_SUM', details)

    @property
    def actual_sum(self):
        return (self.details or {}).get('actual_sum')


class IndexParameterError(ValidationError):
    """Exception raised for index parameters outside their allowed range."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invalid index parameters"
        super().__init__(message, code or 'INDEX_RANGE', details)


class RecordImportError(AllocationError):
    """Exception raised when an import file cannot be read at all."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Import error"
        super().__init__(message, code, details)


class CalculationError(AllocationError):
    """Exception raised for calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)


class ScenarioLockedError(AllocationError):
    """Exception raised when a locked scenario is edited."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Scenario is locked"
        super().__init__(message, code or 'SCENARIO_LOCKED', details)


class PersistenceError(AllocationError):
    """Exception raised when the storage collaborator fails.

    The engine is deterministic, so callers recover by recomputing and
    resubmitting the whole batch.
    """

    def __init__(self, message=None, code=None, details=None, retryable=True):
        message = message or "Persistence error"
        self.retryable = retryable
        super().__init__(message, code, details)

    def to_dict(self):
        error_dict = super().to_dict()
        error_dict['retryable'] = self.retryable
        return error_dict
