"""
taskpipe - Task pipelines over pretrained transformer models.

    from taskpipe import pipeline

    ner = pipeline("ner")
    ner("Ruby is a programming language created by Matz")
"""

from .core.errors import (
    ConfigurationError,
    InferenceError,
    InputValidationError,
    ResourceAcquisitionError,
    TaskPipeError,
)
from .core.message_types import InitiateEvent, ProgressEvent, ReadyEvent
from .pipelines import BasePipeline, PipelineFactory, PipelineTask, pipeline

__version__ = "0.1.0"

__all__ = [
    "pipeline",
    "PipelineFactory",
    "PipelineTask",
    "BasePipeline",
    "InitiateEvent",
    "ReadyEvent",
    "ProgressEvent",
    "TaskPipeError",
    "ConfigurationError",
    "InputValidationError",
    "ResourceAcquisitionError",
    "InferenceError",
]
