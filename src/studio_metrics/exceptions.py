"""Domain-specific exceptions for studio-metrics.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from StudioMetricsError for easy catching.
"""


class StudioMetricsError(Exception):
    """Base exception for all studio-metrics errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ConfigError(StudioMetricsError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - A keyword list used for matching is empty
    - The minimum qualifying sale value is negative
    - Sentinel labels are blank or collide with each other
    """

    pass


class IngestionError(StudioMetricsError):
    """Raised when an input export cannot be read.

    This exception is raised when:
    - The CSV file does not exist
    - The file is empty or cannot be parsed as CSV
    """

    pass


class PipelineError(StudioMetricsError):
    """Raised when a pipeline stage fails.

    Field-level data problems never raise; they degrade to defaults.
    This exception wraps unexpected faults inside a stage so the caller
    receives no partial result.
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage
