"""
Backends Module - Adapters between pipelines and model tooling
"""

from .base_backend import (
    Encoding,
    ImageProcessorAdapter,
    ModelConfig,
    ModelRuntime,
    ProcessedImage,
    TokenizerAdapter,
)

__all__ = [
    "Encoding",
    "ImageProcessorAdapter",
    "ModelConfig",
    "ModelRuntime",
    "ProcessedImage",
    "TokenizerAdapter",
]
