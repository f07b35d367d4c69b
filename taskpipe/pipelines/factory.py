"""
PipelineFactory - Task registry and pipeline construction

1. Task name -> closed registry entry (pipeline class, default model, model class)
2. Options validated up front (unknown keys rejected)
3. Resources acquired with progress reporting, then one ready event

NO open-ended routing: unknown tasks are a configuration error.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from ..config import resolve_device
from ..core.errors import ConfigurationError
from ..core.message_types import ProgressCallback, ReadyEvent
from ..core.resource_manager import ResourceManager, ResourceRequest
from .base import BasePipeline, validate_options
from .clip import ClipPipeline
from .cross_encoder import CrossEncoderPipeline
from .embedding import EmbeddingPipeline, FeatureExtractionPipeline
from .fill_mask import FillMaskPipeline
from .image_classification import ImageClassificationPipeline, ImageFeatureExtractionPipeline
from .question_answering import QuestionAnsweringPipeline
from .text_classification import TextClassificationPipeline
from .token_classification import TokenClassificationPipeline
from .types import TASK_ALIASES, PipelineSpec, PipelineTask
from .zero_shot_classification import ZeroShotClassificationPipeline

logger = logging.getLogger(__name__)
PREFIX = "[PipelineFactory]"


@dataclass(frozen=True)
class TaskSpec:
    """Registry entry for one task"""
    pipeline_class: Type[BasePipeline]
    default_model: str
    model_class: str
    needs_tokenizer: bool = True
    needs_image_processor: bool = False


TASK_REGISTRY: Dict[PipelineTask, TaskSpec] = {
    PipelineTask.TOKEN_CLASSIFICATION: TaskSpec(
        TokenClassificationPipeline,
        "Davlan/bert-base-multilingual-cased-ner-hrl",
        "AutoModelForTokenClassification",
    ),
    PipelineTask.TEXT_CLASSIFICATION: TaskSpec(
        TextClassificationPipeline,
        "distilbert/distilbert-base-uncased-finetuned-sst-2-english",
        "AutoModelForSequenceClassification",
    ),
    PipelineTask.QUESTION_ANSWERING: TaskSpec(
        QuestionAnsweringPipeline,
        "distilbert/distilbert-base-cased-distilled-squad",
        "AutoModelForQuestionAnswering",
    ),
    PipelineTask.ZERO_SHOT_CLASSIFICATION: TaskSpec(
        ZeroShotClassificationPipeline,
        "typeform/distilbert-base-uncased-mnli",
        "AutoModelForSequenceClassification",
    ),
    PipelineTask.FILL_MASK: TaskSpec(
        FillMaskPipeline,
        "google-bert/bert-base-uncased",
        "AutoModelForMaskedLM",
    ),
    PipelineTask.FEATURE_EXTRACTION: TaskSpec(
        FeatureExtractionPipeline,
        "sentence-transformers/all-MiniLM-L6-v2",
        "AutoModel",
    ),
    PipelineTask.EMBEDDING: TaskSpec(
        EmbeddingPipeline,
        "sentence-transformers/all-MiniLM-L6-v2",
        "AutoModel",
    ),
    PipelineTask.RERANKING: TaskSpec(
        CrossEncoderPipeline,
        "mixedbread-ai/mxbai-rerank-base-v1",
        "AutoModelForSequenceClassification",
    ),
    PipelineTask.IMAGE_CLASSIFICATION: TaskSpec(
        ImageClassificationPipeline,
        "google/vit-base-patch16-224",
        "AutoModelForImageClassification",
        needs_tokenizer=False,
        needs_image_processor=True,
    ),
    PipelineTask.ZERO_SHOT_IMAGE_CLASSIFICATION: TaskSpec(
        ClipPipeline,
        "openai/clip-vit-base-patch32",
        "AutoModel",
        needs_tokenizer=True,
        needs_image_processor=True,
    ),
    PipelineTask.IMAGE_FEATURE_EXTRACTION: TaskSpec(
        ImageFeatureExtractionPipeline,
        "google/vit-base-patch16-224-in21k",
        "AutoModel",
        needs_tokenizer=False,
        needs_image_processor=True,
    ),
}


class PipelineOptions(BaseModel):
    """Construction options accepted by the factory"""
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    model: Optional[str] = None
    tokenizer: Optional[str] = None
    progress_callback: Optional[ProgressCallback] = None
    device: Optional[str] = None
    revision: Optional[str] = None
    cache_dir: Optional[str] = None
    local_files_only: bool = False
    default_options: Dict[str, Any] = {}
    resource_manager: Optional[ResourceManager] = None


def resolve_task(task: str) -> PipelineTask:
    """Map a task name or alias to its PipelineTask"""
    if task in TASK_ALIASES:
        return TASK_ALIASES[task]
    try:
        return PipelineTask(task)
    except ValueError:
        known = sorted([t.value for t in PipelineTask] + list(TASK_ALIASES))
        raise ConfigurationError(f"Unknown task '{task}'. Available tasks: {', '.join(known)}") from None


class PipelineFactory:
    """
    Factory for creating pipelines.

    Every task resolves through TASK_REGISTRY; there is no fallback pipeline.
    """

    @staticmethod
    def create_pipeline(task: str, **options) -> BasePipeline:
        """
        Create a ready-to-call pipeline.

        Args:
            task: Task name (e.g. 'ner', 'fill-mask', 'zero-shot-image-classification')
            **options: See PipelineOptions

        Returns:
            Concrete pipeline instance

        Raises:
            ConfigurationError: unknown task or invalid option
            ResourceAcquisitionError: model/tokenizer/processor failed to load
        """
        pipeline_task = resolve_task(task)
        try:
            opts = PipelineOptions(**options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pipeline options: {e}") from e

        task_spec = TASK_REGISTRY[pipeline_task]
        validate_options(task_spec.pipeline_class.options_class, dict(opts.default_options))
        model_id = opts.model or task_spec.default_model
        spec = PipelineSpec(
            task=pipeline_task,
            model=model_id,
            tokenizer=opts.tokenizer,
            default_options=dict(opts.default_options),
        )

        logger.info(f"{PREFIX} Creating {task_spec.pipeline_class.__name__} for task: "
                    f"{pipeline_task.value}, model: {model_id}")

        manager = opts.resource_manager or ResourceManager()

        request = ResourceRequest(
            model=model_id,
            model_class=task_spec.model_class,
            tokenizer=opts.tokenizer,
            needs_tokenizer=task_spec.needs_tokenizer,
            needs_image_processor=task_spec.needs_image_processor,
            device=resolve_device(opts.device),
            revision=opts.revision,
            cache_dir=opts.cache_dir,
            local_files_only=opts.local_files_only,
        )
        resources = manager.acquire(request, progress_callback=opts.progress_callback)

        pipe = task_spec.pipeline_class(
            spec,
            runtime=resources.runtime,
            tokenizer=resources.tokenizer,
            image_processor=resources.image_processor,
        )

        if opts.progress_callback is not None:
            opts.progress_callback(ReadyEvent(task=pipeline_task.value, model=model_id))
        logger.info(f"{PREFIX} ✅ Pipeline ready: {pipeline_task.value} ({model_id})")
        return pipe


def pipeline(task: str, **options) -> BasePipeline:
    """
    Create a pipeline for `task`.

    Shorthand for PipelineFactory.create_pipeline().
    """
    return PipelineFactory.create_pipeline(task, **options)
