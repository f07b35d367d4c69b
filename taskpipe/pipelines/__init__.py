"""
Pipelines Module - Task-specific preprocess / postprocess handlers

Each pipeline file handles ONE task family. The factory maps a task name
to its pipeline class through a closed registry.
"""

from .base import BasePipeline, CallOptions
from .token_classification import TokenClassificationPipeline
from .text_classification import TextClassificationPipeline
from .question_answering import QuestionAnsweringPipeline
from .zero_shot_classification import ZeroShotClassificationPipeline
from .fill_mask import FillMaskPipeline
from .embedding import EmbeddingPipeline, FeatureExtractionPipeline
from .cross_encoder import CrossEncoderPipeline
from .image_classification import ImageClassificationPipeline, ImageFeatureExtractionPipeline
from .clip import ClipPipeline

from .types import PipelineSpec, PipelineTask, PipelineTaskType
from .factory import PipelineFactory, pipeline


__all__ = [
    # Base
    "BasePipeline",
    "CallOptions",
    # Pipelines
    "TokenClassificationPipeline",
    "TextClassificationPipeline",
    "QuestionAnsweringPipeline",
    "ZeroShotClassificationPipeline",
    "FillMaskPipeline",
    "FeatureExtractionPipeline",
    "EmbeddingPipeline",
    "CrossEncoderPipeline",
    "ImageClassificationPipeline",
    "ClipPipeline",
    "ImageFeatureExtractionPipeline",
    # Factory and types
    "PipelineFactory",
    "PipelineSpec",
    "PipelineTask",
    "PipelineTaskType",
    "pipeline",
]
