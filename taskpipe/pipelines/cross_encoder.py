"""
CrossEncoderPipeline - Document reranking

For: Cross-encoder models for reranking search results
Examples: ms-marco-MiniLM, bge-reranker, mxbai-rerank

Each (query, document) pair is scored jointly; one relevance logit per pair.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import Field

from ..core.errors import InputValidationError
from ..core.tensor_ops import sigmoid
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class RerankingOptions(CallOptions):
    # None = every document
    top_k: Optional[int] = Field(None, ge=1)
    return_documents: bool = False


class CrossEncoderPipeline(BasePipeline):
    """
    Cross-encoder reranking pipeline.

    Call as rerank(query, documents). Documents are sorted by descending
    sigmoid score; equal scores keep their original order.
    """

    options_class = RerankingOptions

    def pipeline_type(self) -> str:
        return "reranking"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        query = inputs
        documents = args[0] if args else None
        if not isinstance(query, str) or not query.strip():
            raise InputValidationError("No query provided")
        if documents is None or isinstance(documents, str):
            raise InputValidationError("Documents must be a list of strings")
        documents = list(documents)
        if not documents:
            return None, documents

        tokenizer = self.require_tokenizer()
        encodings = tokenizer.encode_batch([query] * len(documents), documents)
        return tokenizer.pad(encodings), documents

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Dict[str, Any]]:
        documents = context
        if not documents:
            return []

        # (num_docs, 1) relevance logits
        scores = sigmoid(np.asarray(outputs["logits"]).reshape(len(documents), -1)[:, 0])
        order = sorted(range(len(documents)), key=lambda idx: -scores[idx])
        if options.top_k is not None:
            order = order[:options.top_k]

        results = []
        for doc_id in order:
            result = {"doc_id": doc_id, "score": float(scores[doc_id])}
            if options.return_documents:
                result["text"] = documents[doc_id]
            results.append(result)

        logger.debug(f"[CrossEncoder] Ranked {len(documents)} documents")
        return results
