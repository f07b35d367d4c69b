"""
Unit tests for CrossEncoderPipeline (reranking)
"""

import numpy as np
import pytest

from fakes import FakeRuntime
from taskpipe.core.errors import InputValidationError
from taskpipe.pipelines.cross_encoder import CrossEncoderPipeline
from taskpipe.pipelines.types import PipelineSpec, PipelineTask

QUERY = "How many people live in London?"
DOCUMENTS = ["Around 9 Million people live in London", "London is known for its financial district"]


def make_pipeline(tokenizer, logits):
    runtime = FakeRuntime(lambda inputs: {"logits": np.asarray(logits, dtype=np.float64).reshape(-1, 1)})
    spec = PipelineSpec(task=PipelineTask.RERANKING, model="fake/reranker")
    return CrossEncoderPipeline(spec, runtime=runtime, tokenizer=tokenizer), runtime


class TestCrossEncoderPipeline:
    """Tests for query/document relevance ranking"""

    def test_documents_sorted_by_relevance(self, tokenizer):
        # Arrange
        rerank, runtime = make_pipeline(tokenizer, [4.1, -1.8])

        # Act
        result = rerank(QUERY, DOCUMENTS)

        # Assert
        assert [r["doc_id"] for r in result] == [0, 1]
        assert result[0]["score"] == pytest.approx(1 / (1 + np.exp(-4.1)))
        assert result[1]["score"] == pytest.approx(1 / (1 + np.exp(1.8)))
        assert len(runtime.calls) == 1

    def test_result_is_permutation_of_documents(self, tokenizer):
        rerank, _ = make_pipeline(tokenizer, [-2.0, 3.0, 0.5, 1.0])

        result = rerank(QUERY, ["a", "b", "c", "d"])

        assert sorted(r["doc_id"] for r in result) == [0, 1, 2, 3]
        assert [r["doc_id"] for r in result] == [1, 3, 2, 0]
        assert all(0.0 < r["score"] < 1.0 for r in result)

    def test_ties_keep_original_order(self, tokenizer):
        rerank, _ = make_pipeline(tokenizer, [1.0, 2.0, 1.0, 2.0])

        result = rerank(QUERY, ["a", "b", "c", "d"])

        assert [r["doc_id"] for r in result] == [1, 3, 0, 2]

    def test_top_k_and_return_documents(self, tokenizer):
        rerank, _ = make_pipeline(tokenizer, [-2.0, 3.0, 0.5])

        result = rerank(QUERY, ["a", "b", "c"], top_k=2, return_documents=True)

        assert result == [
            {"doc_id": 1, "score": pytest.approx(1 / (1 + np.exp(-3.0))), "text": "b"},
            {"doc_id": 2, "score": pytest.approx(1 / (1 + np.exp(-0.5))), "text": "c"},
        ]

    def test_pairs_encode_query_with_each_document(self, tokenizer):
        rerank, runtime = make_pipeline(tokenizer, [0.0, 0.0])

        rerank(QUERY, DOCUMENTS)

        token_type_ids = runtime.calls[0]["token_type_ids"]
        assert token_type_ids.shape[0] == 2
        assert token_type_ids[0].max() == 1

    def test_empty_documents_skip_inference(self, tokenizer):
        rerank, runtime = make_pipeline(tokenizer, [])

        assert rerank(QUERY, []) == []
        assert runtime.calls == []

    @pytest.mark.parametrize("query, documents", [("", DOCUMENTS), (QUERY, None), (QUERY, "one document")])
    def test_invalid_inputs_rejected(self, tokenizer, query, documents):
        rerank, runtime = make_pipeline(tokenizer, [0.0, 0.0])

        with pytest.raises(InputValidationError):
            rerank(query, documents)
        assert runtime.calls == []
