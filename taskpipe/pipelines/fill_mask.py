"""
FillMaskPipeline - Masked language modeling

For: Masked LM models
Examples: bert-base-uncased, distilroberta-base
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import Field

from ..core.errors import InputValidationError
from ..core.tensor_ops import softmax, top_k
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)

DEFAULT_MASK_TOKEN = "[MASK]"


class FillMaskOptions(CallOptions):
    top_k: int = Field(5, ge=1)
    # None = the tokenizer's own mask token
    mask_token: Optional[str] = None
    targets: Optional[List[str]] = None


class FillMaskPipeline(BasePipeline):
    """
    Fill-mask pipeline.

    Predicts the token at the first mask position.
    """

    options_class = FillMaskOptions

    def pipeline_type(self) -> str:
        return "fill-mask"

    def mask_token_for(self, options: FillMaskOptions) -> str:
        return options.mask_token or self.require_tokenizer().mask_token or DEFAULT_MASK_TOKEN

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if not isinstance(inputs, str):
            raise InputValidationError("Text must be a string")

        mask_token = self.mask_token_for(options)
        if mask_token not in inputs:
            raise InputValidationError(f"Mask token ({mask_token}) not found in text.")

        tokenizer = self.require_tokenizer()
        model_text = inputs
        if tokenizer.mask_token and mask_token != tokenizer.mask_token:
            model_text = inputs.replace(mask_token, tokenizer.mask_token)

        encoding = tokenizer.encode(model_text)
        if tokenizer.mask_token_id not in encoding.ids:
            raise InputValidationError(f"Mask token ({mask_token}) not found in text.")
        position = encoding.ids.index(tokenizer.mask_token_id)

        target_ids = self.target_ids(options.targets) if options.targets else None
        return tokenizer.pad([encoding]), (inputs, mask_token, position, target_ids)

    def target_ids(self, targets: List[str]) -> List[int]:
        """Vocabulary ids for `targets`, deduplicated; words outside the vocabulary are rejected"""
        tokenizer = self.require_tokenizer()
        ids = tokenizer.convert_tokens_to_ids(targets)
        unknown = [
            target for target, idx in zip(targets, ids)
            if idx is None or (idx == tokenizer.unk_token_id and target != tokenizer.convert_ids_to_tokens([idx])[0])
        ]
        if unknown:
            raise InputValidationError(f"Targets not in the model vocabulary: {', '.join(unknown)}")
        return list(dict.fromkeys(ids))

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Dict[str, Any]]:
        text, mask_token, position, target_ids = context
        probs = softmax(outputs["logits"][0][position])

        if target_ids:
            target_ids = [idx for idx in target_ids if idx < len(probs)]
            ranked = [(target_ids[i], score) for i, score in top_k(probs[target_ids], options.top_k)]
        else:
            ranked = top_k(probs, options.top_k)

        results = []
        for token_id, score in ranked:
            token_str = self.tokenizer.decode([token_id]).strip()
            results.append({
                "score": score,
                "token": token_id,
                "token_str": token_str,
                "sequence": text.replace(mask_token, token_str, 1).lower(),
            })

        if results:
            logger.debug(f"[FillMask] Top prediction: {results[0]['token_str']!r} ({results[0]['score']:.2%})")
        return results
