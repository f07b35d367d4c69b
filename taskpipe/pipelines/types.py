"""
Pipeline Types - Type-safe constants and enums

NO string literals! All task types defined as constants.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional


class PipelineTask(str, Enum):
    """
    Pipeline task types (type-safe enum).

    Closed set: the factory registry has exactly one entry per member.
    """
    TOKEN_CLASSIFICATION = "token-classification"
    TEXT_CLASSIFICATION = "text-classification"
    QUESTION_ANSWERING = "question-answering"
    ZERO_SHOT_CLASSIFICATION = "zero-shot-classification"
    FILL_MASK = "fill-mask"
    FEATURE_EXTRACTION = "feature-extraction"
    EMBEDDING = "embedding"
    RERANKING = "reranking"
    IMAGE_CLASSIFICATION = "image-classification"
    ZERO_SHOT_IMAGE_CLASSIFICATION = "zero-shot-image-classification"
    IMAGE_FEATURE_EXTRACTION = "image-feature-extraction"


# Alternative task names accepted by the factory
TASK_ALIASES: Dict[str, PipelineTask] = {
    "ner": PipelineTask.TOKEN_CLASSIFICATION,
    "sentiment-analysis": PipelineTask.TEXT_CLASSIFICATION,
}


# Type alias for pipeline task strings
PipelineTaskType = Literal[
    "token-classification",
    "ner",
    "text-classification",
    "sentiment-analysis",
    "question-answering",
    "zero-shot-classification",
    "fill-mask",
    "feature-extraction",
    "embedding",
    "reranking",
    "image-classification",
    "zero-shot-image-classification",
    "image-feature-extraction",
]


@dataclass(frozen=True)
class PipelineSpec:
    """
    Immutable description of a constructed pipeline.

    Attributes:
        task: Resolved task
        model: Model reference (hub repo id or local directory)
        tokenizer: Tokenizer/processor reference, None when it is the model's own
        default_options: Call options applied before per-call options
    """
    task: PipelineTask
    model: str
    tokenizer: Optional[str] = None
    default_options: Dict[str, Any] = field(default_factory=dict)
