"""
ClipPipeline - Zero-shot image classification

Specialized for: Dual-encoder (image/text) models
Architecture-specific: CLIP-style contrastive scoring

Each candidate label is rendered through the hypothesis template, embedded
by the text tower and compared to the single image embedding.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np

from ..core.errors import InputValidationError
from ..core.tensor_ops import l2_normalize, softmax, top_k
from .base import CallOptions, ModelInputs
from .image_classification import VisionPipeline
from .zero_shot_classification import ZeroShotClassificationPipeline

logger = logging.getLogger(__name__)


class ZeroShotImageClassificationOptions(CallOptions):
    hypothesis_template: str = "This is a photo of {}"


class ClipPipeline(VisionPipeline):
    """
    CLIP zero-shot image classification pipeline.

    Call as classifier(image, candidate_labels). Scores are a softmax over
    logit_scale * cosine(image, label) and sum to 1.
    """

    options_class = ZeroShotImageClassificationOptions

    def pipeline_type(self) -> str:
        return "zero-shot-image-classification"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        labels = ZeroShotClassificationPipeline.parse_labels(args[0] if args else None)
        template = options.hypothesis_template
        if "{}" not in template:
            raise InputValidationError(
                f'The hypothesis_template "{template}" needs a "{{}}" placeholder for the label'
            )

        image_inputs, original_size = super().preprocess(inputs, options=options)
        tokenizer = self.require_tokenizer()
        text_inputs = tokenizer.pad(tokenizer.encode_batch([template.format(label) for label in labels]))
        return {**text_inputs, **image_inputs}, labels

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Dict[str, Any]]:
        labels = context
        image_embeds = l2_normalize(outputs["image_embeds"])[0]
        text_embeds = l2_normalize(outputs["text_embeds"])

        logit_scale = float(np.exp(np.asarray(self.runtime.get_parameter("logit_scale")).reshape(-1)[0]))
        logits = logit_scale * (text_embeds @ image_embeds)
        probs = softmax(logits)

        predictions = [{"label": labels[idx], "score": score} for idx, score in top_k(probs)]
        logger.debug(f"[CLIP] Classified image with {len(labels)} candidates, top: {predictions[0]['label']}")
        return predictions
