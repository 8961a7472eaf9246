"""
Custom exception hierarchy for the bounded backward elimination package.
"""

class FastBackwardException(Exception):
    """Base exception for all package errors."""
    pass

class ConfigurationError(FastBackwardException):
    """Configuration validation failed."""
    pass

class CriterionError(FastBackwardException):
    """The information criterion is undefined for the starting model."""
    pass

class ObservationCountError(FastBackwardException):
    """The number of rows used by a refit differs from the starting model."""
    pass

class ScopeError(FastBackwardException):
    """The protected scope is not contained in the model."""
    pass

class ModelFittingError(FastBackwardException):
    """Model fitting failed."""
    pass
