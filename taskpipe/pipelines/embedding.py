"""
FeatureExtractionPipeline / EmbeddingPipeline - Text features and sentence embeddings

For: Encoder models, sentence transformers
Supports: all-MiniLM, E5, BGE, etc.

feature-extraction returns raw per-token vectors; embedding mean-pools over
non-padding tokens and L2-normalizes. Batches run as one padded forward pass.
"""

import logging
from typing import Any, Dict, List, Literal, Sequence, Tuple, Union

import numpy as np

from ..core.errors import ConfigurationError, InputValidationError
from ..core.tensor_ops import l2_normalize, mean_pool
from .base import BasePipeline, CallOptions, ModelInputs

logger = logging.getLogger(__name__)


class FeatureExtractionOptions(CallOptions):
    pooling: Literal["none", "mean", "cls"] = "none"
    normalize: bool = False


class EmbeddingOptions(CallOptions):
    pooling: Literal["mean", "cls"] = "mean"
    normalize: bool = True
    # Prepended to every input, for instruction-style models ("query: ", ...)
    prefix: str = ""


class FeatureExtractionPipeline(BasePipeline):
    """
    Text feature extraction pipeline.

    With pooling="none" each input yields one vector per token, padding excluded.
    """

    options_class = FeatureExtractionOptions

    def pipeline_type(self) -> str:
        return "feature-extraction"

    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        if not isinstance(inputs, str) or not inputs:
            raise InputValidationError("Text must be a non-empty string")
        prefix = getattr(options, "prefix", "")
        return None, self.require_tokenizer().encode(prefix + inputs)

    def process(self, inputs: List[Any], args: Tuple[Any, ...], options: CallOptions) -> List[Any]:
        if not inputs:
            return []
        encodings = [self.preprocess(item, options=options)[1] for item in inputs]
        model_inputs = self.tokenizer.pad(encodings)
        outputs = self.forward(model_inputs)

        hidden = np.asarray(outputs["last_hidden_state"], dtype=np.float64)
        mask = model_inputs["attention_mask"]
        logger.debug(f"[{self.__class__.__name__}] Encoded {len(encodings)} text(s), hidden={hidden.shape}")

        if options.pooling == "mean":
            vectors = mean_pool(hidden, mask)
        elif options.pooling == "cls":
            vectors = hidden[:, 0]
        else:
            return [
                self.postprocess({"vectors": hidden[row][mask[row].astype(bool)]}, None, options)
                for row in range(len(encodings))
            ]
        return [self.postprocess({"vectors": vector}, None, options) for vector in vectors]

    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> List[Any]:
        vectors = outputs["vectors"]
        if options.normalize:
            vectors = l2_normalize(vectors)
        return vectors.tolist()


class EmbeddingPipeline(FeatureExtractionPipeline):
    """
    Sentence embedding pipeline.

    One unit-length vector per input, order preserved.
    """

    options_class = EmbeddingOptions

    def pipeline_type(self) -> str:
        return "embedding"

    def similarity(
        self,
        texts1: Union[str, Sequence[str]],
        texts2: Union[str, Sequence[str]],
        metric: str = "cosine"
    ) -> List[List[float]]:
        """
        Compute semantic similarity between two groups of texts.

        Returns:
            len(texts1) x len(texts2) matrix
        """
        from sentence_transformers import util
        import torch

        if metric not in ("cosine", "dot"):
            raise ConfigurationError(f"Unknown metric: {metric}")

        if isinstance(texts1, str):
            texts1 = [texts1]
        if isinstance(texts2, str):
            texts2 = [texts2]

        emb1 = torch.tensor(self.call_batch(list(texts1)))
        emb2 = torch.tensor(self.call_batch(list(texts2)))

        if metric == "cosine":
            similarities = util.cos_sim(emb1, emb2)
        else:
            similarities = util.dot_score(emb1, emb2)

        return similarities.cpu().numpy().tolist()
