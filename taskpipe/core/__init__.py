"""
Core Module - Errors, progress events and resource acquisition
"""

from .errors import (
    ConfigurationError,
    InferenceError,
    InputValidationError,
    ResourceAcquisitionError,
    TaskPipeError,
)
from .message_types import InitiateEvent, LoadingStatus, ProgressEvent, ReadyEvent

__all__ = [
    "ConfigurationError",
    "InferenceError",
    "InputValidationError",
    "ResourceAcquisitionError",
    "TaskPipeError",
    "InitiateEvent",
    "LoadingStatus",
    "ProgressEvent",
    "ReadyEvent",
]
