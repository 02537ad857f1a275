"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that abort the run."""

    error_code = "STAGE_ERROR"


class InputFileError(StageError):
    """Raised when an input file cannot be opened or parsed."""

    error_code = "INPUT_ERROR"


class OutputWriteError(StageError):
    """Raised when an output directory or artifact cannot be written."""

    error_code = "OUTPUT_ERROR"
