"""
TokenClassificationPipeline - Named entity recognition

For: Token classification models with BIO-tagged label sets
Examples: bert-base-NER, bert-base-multilingual-cased-ner-hrl

Aggregation:
- "none": one record per token, sub-word granularity
- "simple": BIO merge of consecutive tokens into entities
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

import numpy as np

from ..core.errors import InputValidationError
from ..core.tensor_ops import softmax
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class TokenClassificationOptions(CallOptions):
    aggregation_strategy: Literal["none", "simple"] = "simple"
    ignore_labels: List[str] = ["O"]
    # How a merged entity's score is derived from its token scores
    entity_score: Literal["average", "first", "max"] = "average"


def split_tag(label: str) -> Tuple[str, str]:
    """'B-PER' -> ('B', 'PER'); a bare label is treated as a continuation"""
    if label.startswith(("B-", "I-")):
        return label[0], label[2:]
    return "I", label


class TokenClassificationPipeline(BasePipeline):
    """
    Token classification pipeline.

    Softmax per token, argmax label, then optional BIO aggregation.
    """

    options_class = TokenClassificationOptions

    def pipeline_type(self) -> str:
        return "token-classification"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if not isinstance(inputs, str) or not inputs.strip():
            raise InputValidationError("Text must be a non-empty string")

        tokenizer = self.require_tokenizer()
        encoding = tokenizer.encode(inputs)
        return tokenizer.pad([encoding]), (inputs, encoding)

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Dict[str, Any]]:
        text, encoding = context
        probs = softmax(outputs["logits"][0])
        id2label = self.runtime.config.id2label
        raw_tokens = self.tokenizer.convert_ids_to_tokens(encoding.ids)

        tokens = []
        for index, token_id in enumerate(encoding.ids):
            if encoding.special_tokens_mask[index] or encoding.offsets[index] is None:
                continue
            label_id = int(np.argmax(probs[index]))
            start, end = encoding.offsets[index]
            tokens.append({
                "entity": id2label.get(label_id, str(label_id)),
                "score": float(probs[index][label_id]),
                "index": index,
                "word": raw_tokens[index],
                "start": start,
                "end": end,
            })

        ignored = set(options.ignore_labels)
        if options.aggregation_strategy == "none":
            entities = [token for token in tokens if token["entity"] not in ignored]
        else:
            entities = self.group_entities(tokens, ignored, options.entity_score)

        logger.debug(f"[NER] Found {len(entities)} entities in {len(tokens)} tokens")
        return entities

    def group_entities(
        self,
        tokens: List[Dict[str, Any]],
        ignored: set,
        entity_score: str = "average"
    ) -> List[Dict[str, Any]]:
        """
        Merge consecutive BIO-tagged tokens.

        B-X opens an entity; I-X extends the open entity when its type is X,
        otherwise opens a new one; ignored labels close the open entity.
        """
        groups: List[Tuple[str, List[Dict[str, Any]]]] = []
        current: Optional[Tuple[str, List[Dict[str, Any]]]] = None

        for token in tokens:
            if token["entity"] in ignored:
                current = None
                continue

            bi, tag = split_tag(token["entity"])
            if bi == "I" and current is not None and current[0] == tag:
                current[1].append(token)
            else:
                current = (tag, [token])
                groups.append(current)

        return [
            self._merge(tag, members, entity_score)
            for tag, members in groups
            if tag not in ignored
        ]

    def _merge(self, tag: str, members: List[Dict[str, Any]], entity_score: str) -> Dict[str, Any]:
        scores = [member["score"] for member in members]
        if entity_score == "first":
            score = scores[0]
        elif entity_score == "max":
            score = max(scores)
        else:
            score = float(np.mean(scores))

        return {
            "entity_group": tag,
            "score": score,
            "word": self.tokenizer.convert_tokens_to_string([member["word"] for member in members]),
            "start": members[0]["start"],
            "end": members[-1]["end"],
        }
