"""Exceptions raised by the hydrology pipeline."""


class HydrologyError(Exception):
    """Base class for hydrology pipeline errors."""


class InvalidConfiguration(HydrologyError, ValueError):
    """Raised when generation parameters describe a degenerate sampling grid."""


class GenerationCancelled(HydrologyError):
    """Raised between stages when a caller cancels a running generation."""
