"""
ZeroShotClassificationPipeline - Zero-shot classification

For: Models that classify text into arbitrary categories without training
Uses NLI (Natural Language Inference) models for zero-shot classification
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from ..core.errors import ConfigurationError, InputValidationError
from ..core.tensor_ops import softmax, top_k
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class ZeroShotClassificationOptions(CallOptions):
    multi_label: bool = False
    hypothesis_template: str = "This example is {}."


class ZeroShotClassificationPipeline(BasePipeline):
    """
    Zero-shot classification pipeline.

    Each candidate label becomes a hypothesis scored against the input text
    as premise; all hypotheses for one text run as a single batch.
    """

    options_class = ZeroShotClassificationOptions

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entailment_id = self._get_label_id("entail")
        self.contradiction_id = self._get_label_id("contra")
        if self.entailment_id is None or self.contradiction_id is None:
            raise ConfigurationError(
                f"{self.model_id} has no entailment/contradiction labels: "
                f"{sorted(self.runtime.config.label2id)}"
            )

    def pipeline_type(self) -> str:
        return "zero-shot-classification"

    def _get_label_id(self, prefix: str) -> Optional[int]:
        """Find an NLI label id by case-insensitive prefix (ENTAILMENT, entailment, ...)"""
        for label, idx in self.runtime.config.label2id.items():
            if label.lower().startswith(prefix):
                return idx
        return None

    @staticmethod
    def parse_labels(candidate_labels: Union[str, List[str], None]) -> List[str]:
        if isinstance(candidate_labels, str):
            candidate_labels = [label.strip() for label in candidate_labels.split(",")]
        labels = [label for label in (candidate_labels or []) if label]
        if not labels:
            raise InputValidationError("You must include at least one label")
        return labels

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if not isinstance(inputs, str) or not inputs.strip():
            raise InputValidationError("Text must be a non-empty string")
        labels = self.parse_labels(args[0] if args else None)

        template = options.hypothesis_template
        if "{}" not in template:
            raise InputValidationError(
                f'The hypothesis_template "{template}" needs a "{{}}" placeholder for the label'
            )

        tokenizer = self.require_tokenizer()
        hypotheses = [template.format(label) for label in labels]
        encodings = tokenizer.encode_batch([inputs] * len(labels), hypotheses)
        return tokenizer.pad(encodings), (inputs, labels)

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> Dict[str, Any]:
        text, labels = context
        logits = np.asarray(outputs["logits"], dtype=np.float64)
        entail_logits = logits[:, self.entailment_id]

        if options.multi_label:
            pairs = np.stack([logits[:, self.contradiction_id], entail_logits], axis=-1)
            scores = softmax(pairs, axis=-1)[:, 1]
        else:
            scores = softmax(entail_logits)

        ranked = top_k(scores)
        logger.debug(f"[ZeroShot] Top label: {labels[ranked[0][0]]} ({ranked[0][1]:.2%})")

        return {
            "sequence": text,
            "labels": [labels[idx] for idx, _ in ranked],
            "scores": [score for _, score in ranked],
        }
