"""
Exception hierarchy for grainlib.

The segmentation and feature functions are total over their inputs and never
raise for degenerate signals; these exceptions belong to the boundaries
(loading, configuration) and to explicit reads of uncomputed features.
"""

from typing import Dict, Any, Optional


class GrainlibError(Exception):
    """
    Base exception for all grainlib errors.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional diagnostic information (file paths, values, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Format exception with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


# Audio Errors

class AudioError(GrainlibError):
    """
    Raised when an audio file cannot be turned into a usable signal.

    Corrupt headers, empty files, NaN or infinite samples.
    """
    pass


# Configuration Errors

class ConfigurationError(GrainlibError):
    """Base class for configuration-related errors."""
    pass


class InvalidParameter(ConfigurationError):
    """
    Raised when a parameter is malformed at the configuration boundary.

    A negative sample rate, a non-numeric grain length, a zero-sized display.
    """
    pass


class UnknownFeature(InvalidParameter):
    """Raised when a feature name does not match any known descriptor."""
    pass


# Analysis Errors

class AnalysisError(GrainlibError):
    """Base class for grain analysis errors."""
    pass


class FeatureNotComputed(AnalysisError, KeyError):
    """
    Raised when reading a feature that was never computed for a grain.

    Distinct from a feature whose value is zero.
    """
    pass
