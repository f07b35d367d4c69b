"""
QuestionAnsweringPipeline - Extractive question answering

For: Span-prediction models (start/end logits)
Examples: distilbert-base-cased-distilled-squad

The answer is always sliced from the context using token offsets, never
re-tokenized, so answer == context[start:end].
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from pydantic import Field

from ..core.errors import InputValidationError
from ..core.tensor_ops import masked_softmax
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)

CONTEXT_SEQUENCE_ID = 1


class QuestionAnsweringOptions(CallOptions):
    max_answer_length: int = Field(15, ge=1)
    top_k: int = Field(1, ge=1)


class QuestionAnsweringPipeline(BasePipeline):
    """
    Extractive QA pipeline.

    Call as qa(question, context); a list of questions shares one context.
    """

    options_class = QuestionAnsweringOptions

    def pipeline_type(self) -> str:
        return "question-answering"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        question = inputs
        context = args[0] if args else None
        if not isinstance(question, str) or not question.strip():
            raise InputValidationError("Question must be a non-empty string")
        if not isinstance(context, str) or not context.strip():
            raise InputValidationError("Context must be a non-empty string")

        tokenizer = self.require_tokenizer()
        encoding = tokenizer.encode(question, context)
        return tokenizer.pad([encoding]), (context, encoding)

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> Any:
        text, encoding = context
        valid = np.array([
            seq_id == CONTEXT_SEQUENCE_ID and not special and offset is not None
            for seq_id, special, offset in zip(
                encoding.sequence_ids, encoding.special_tokens_mask, encoding.offsets
            )
        ])
        if not valid.any():
            raise InputValidationError("Context produced no answerable tokens")

        start_probs = masked_softmax(outputs["start_logits"][0][:len(valid)], valid)
        end_probs = masked_softmax(outputs["end_logits"][0][:len(valid)], valid)

        spans = self.best_spans(start_probs, end_probs, valid, options.max_answer_length, options.top_k)
        answers = []
        for i, j, score in spans:
            start = encoding.offsets[i][0]
            end = encoding.offsets[j][1]
            answers.append({"score": score, "answer": text[start:end], "start": start, "end": end})

        logger.debug(f"[QA] Best span: {answers[0]['answer']!r} ({answers[0]['score']:.2%})")
        if options.top_k == 1:
            return answers[0]
        return answers

    @staticmethod
    def best_spans(
        start_probs: np.ndarray,
        end_probs: np.ndarray,
        valid: np.ndarray,
        max_answer_length: int,
        k: int = 1
    ) -> List[Tuple[int, int, float]]:
        """
        Top-k (i, j, start_probs[i] * end_probs[j]) with i <= j and j - i < max_answer_length.

        Both boundaries must be valid context tokens.
        """
        positions = np.arange(len(start_probs))
        length = positions[None, :] - positions[:, None]
        allowed = (length >= 0) & (length < max_answer_length) & np.outer(valid, valid)
        scores = np.where(allowed, np.outer(start_probs, end_probs), -1.0)

        order = np.argsort(-scores, axis=None, kind="stable")
        spans = []
        for flat in order[:k]:
            i, j = np.unravel_index(flat, scores.shape)
            if scores[i, j] < 0:
                break
            spans.append((int(i), int(j), float(scores[i, j])))
        return spans
