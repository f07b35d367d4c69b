"""
TextClassificationPipeline - Sequence classification (sentiment analysis)

For: Single-label sequence classifiers
Examples: distilbert-base-uncased-finetuned-sst-2-english
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from pydantic import Field

from ..core.errors import InputValidationError
from ..core.tensor_ops import softmax, top_k
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class TextClassificationOptions(CallOptions):
    # 1 returns a single {label, score}; more returns a ranked list
    top_k: int = Field(1, ge=1)


class TextClassificationPipeline(BasePipeline):
    """
    Sequence classification pipeline.

    A batch is encoded as one padded tensor and run once.
    """

    options_class = TextClassificationOptions

    def pipeline_type(self) -> str:
        return "text-classification"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if not isinstance(inputs, str) or not inputs.strip():
            raise InputValidationError("Text must be a non-empty string")
        return None, self.require_tokenizer().encode(inputs)

    def process(self, inputs: List[Any], args: Tuple[Any, ...], options: CallOptions) -> List[Any]:
        if not inputs:
            return []
        encodings = [self.preprocess(item, options=options)[1] for item in inputs]
        logits = self.forward(self.tokenizer.pad(encodings))["logits"]
        logger.debug(f"[TextClassification] Classified {len(encodings)} text(s)")
        return [self.postprocess({"logits": row}, None, options) for row in logits]

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> Any:
        probs = softmax(outputs["logits"])
        id2label = self.runtime.config.id2label
        ranked = [
            {"label": id2label.get(idx, str(idx)), "score": score}
            for idx, score in top_k(probs, options.top_k)
        ]
        if options.top_k == 1:
            return ranked[0]
        return ranked
