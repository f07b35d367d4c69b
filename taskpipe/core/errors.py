"""
Exception hierarchy shared by every pipeline.

Validation errors are raised before any model invocation.
Acquisition and inference errors are fatal and never retried.
"""


class TaskPipeError(Exception):
    """Base class for all taskpipe errors"""


class ConfigurationError(TaskPipeError, ValueError):
    """Unknown task, or an invalid/unrecognized option value"""


class InputValidationError(TaskPipeError, ValueError):
    """Call input rejected before inference (missing mask, empty labels, bad image)"""


class ResourceAcquisitionError(TaskPipeError, RuntimeError):
    """Model, tokenizer or processor could not be resolved or loaded"""


class InferenceError(TaskPipeError, RuntimeError):
    """The model runtime failed during a forward pass"""
