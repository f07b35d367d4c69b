"""
ImageClassificationPipeline / ImageFeatureExtractionPipeline - Vision models

For: Vision models that classify images into predefined categories, and
vision backbones used as feature extractors
Examples: ViT, ResNet, ConvNeXT, DINOv2

Images may be file paths, http(s) URLs, data URIs, numpy arrays or PIL images.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from pydantic import Field

from ..core.errors import ConfigurationError
from ..core.tensor_ops import softmax, top_k
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class ImageClassificationOptions(CallOptions):
    top_k: int = Field(5, ge=1)


class ImageFeatureExtractionOptions(CallOptions):
    # Pooled output when the model has one, else the unpooled hidden state
    pool: bool = True


class VisionPipeline(BasePipeline):
    """Shared image preprocessing"""

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if self.image_processor is None:
            raise ConfigurationError(f"{self.__class__.__name__} requires an image processor")
        processed = self.image_processor.preprocess(inputs)
        return {"pixel_values": processed.pixel_values}, processed.original_size


class ImageClassificationPipeline(VisionPipeline):
    """
    Image classification pipeline.

    Softmax over class logits, top_k labels from the model's id2label.
    """

    options_class = ImageClassificationOptions

    def pipeline_type(self) -> str:
        return "image-classification"

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Dict[str, Any]]:
        probs = softmax(outputs["logits"][0])
        id2label = self.runtime.config.id2label
        predictions = [
            {"label": id2label.get(idx, str(idx)), "score": score}
            for idx, score in top_k(probs, min(options.top_k, len(probs)))
        ]
        logger.debug(f"[ImageClassification] Top prediction: {predictions[0]['label']} ({predictions[0]['score']:.2%})")
        return predictions


class ImageFeatureExtractionPipeline(VisionPipeline):
    """
    Image feature extraction pipeline.

    Returns the raw model features with the batch dimension kept; no normalization.
    """

    options_class = ImageFeatureExtractionOptions

    def pipeline_type(self) -> str:
        return "image-feature-extraction"

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Any]:
        if options.pool and "pooler_output" in outputs:
            features = outputs["pooler_output"]
        elif "last_hidden_state" in outputs:
            features = outputs["last_hidden_state"]
        else:
            features = next(iter(outputs.values()))
        logger.debug(f"[ImageFeatureExtraction] Features shape: {features.shape}")
        return np.asarray(features).tolist()
