# taskpipe configuration
"""
Strongly typed configuration for resource acquisition and inference.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional


# Logging configuration
LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class HubConfig:
    """Model hub resolution settings"""

    revision: str = "main"
    cache_dir: Optional[str] = None  # None = huggingface_hub default (HF_HOME)
    local_files_only: bool = False


@dataclass
class InferenceConfig:
    """Runtime settings shared by all pipelines"""

    # None = "cuda" when available, else "cpu"
    default_device: Optional[str] = None
    # Half precision is only used on cuda
    cuda_dtype: str = "float16"
    cpu_dtype: str = "float32"
    max_length: int = 512


# Global configuration instances
HUB_CONFIG = HubConfig()
INFERENCE_CONFIG = InferenceConfig()


def resolve_device(device: Optional[str] = None) -> str:
    """Pick the device string handed to the runtime"""
    if device:
        return device
    if INFERENCE_CONFIG.default_device:
        return INFERENCE_CONFIG.default_device

    import torch
    return "cuda" if torch.cuda.is_available() else "cpu"


def configure_logging(level: Optional[str] = None) -> None:
    """Apply LOG_LEVEL / LOG_FORMAT for applications embedding taskpipe"""
    logging.basicConfig(
        level=getattr(logging, level or LOG_LEVEL),
        format=LOG_FORMAT
    )
