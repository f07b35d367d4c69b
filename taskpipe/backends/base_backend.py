"""
Adapter contracts for the collaborators every pipeline depends on.

- TokenizerAdapter: text -> ids + character offsets + special-token mask
- ImageProcessorAdapter: image source -> normalized pixel tensor
- ModelRuntime: named input tensors -> named output tensors

Pipelines only ever talk to these interfaces; the transformers-backed
implementations live in transformers_backend.py.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np


TokenOffset = Optional[Tuple[int, int]]


@dataclass
class Encoding:
    """
    One encoded text (or text pair).

    Attributes:
        ids: Token ids, special tokens included
        offsets: Character span per token in its source text; None for special tokens
        special_tokens_mask: True where the token was added by the tokenizer
        attention_mask: 1 for real tokens
        sequence_ids: 0 for the first text, 1 for the pair text, None for special tokens
        token_type_ids: Segment ids when the model uses them
    """
    ids: List[int]
    offsets: List[TokenOffset]
    special_tokens_mask: List[bool]
    attention_mask: List[int] = field(default_factory=list)
    sequence_ids: List[Optional[int]] = field(default_factory=list)
    token_type_ids: Optional[List[int]] = None

    def __post_init__(self):
        if not self.attention_mask:
            self.attention_mask = [1] * len(self.ids)
        if not self.sequence_ids:
            self.sequence_ids = [None if special else 0 for special in self.special_tokens_mask]

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class ProcessedImage:
    """Processor output for a single image"""
    pixel_values: np.ndarray  # (1, channels, height, width)
    original_size: Tuple[int, int]  # (width, height)


@dataclass
class ModelConfig:
    """The parts of a model config pipelines read"""
    id2label: Dict[int, str] = field(default_factory=dict)
    label2id: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_id2label(cls, id2label: Mapping[Any, str]) -> "ModelConfig":
        id2label = {int(k): v for k, v in id2label.items()}
        return cls(id2label=id2label, label2id={v: k for k, v in id2label.items()})


class TokenizerAdapter(ABC):
    """Tokenizer contract"""

    @property
    @abstractmethod
    def mask_token(self) -> Optional[str]:
        pass

    @property
    @abstractmethod
    def mask_token_id(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def unk_token_id(self) -> Optional[int]:
        pass

    @abstractmethod
    def encode(self, text: str, text_pair: Optional[str] = None) -> Encoding:
        """Encode one text (or pair) with offsets"""
        pass

    def encode_batch(
        self,
        texts: Sequence[str],
        text_pairs: Optional[Sequence[str]] = None
    ) -> List[Encoding]:
        if text_pairs is None:
            return [self.encode(text) for text in texts]
        return [self.encode(text, pair) for text, pair in zip(texts, text_pairs)]

    @abstractmethod
    def pad(self, encodings: Sequence[Encoding]) -> Dict[str, np.ndarray]:
        """Right-pad encodings into model input arrays (input_ids, attention_mask, ...)"""
        pass

    @abstractmethod
    def decode(self, ids: Sequence[int], skip_special_tokens: bool = True) -> str:
        pass

    @abstractmethod
    def convert_ids_to_tokens(self, ids: Sequence[int]) -> List[str]:
        pass

    @abstractmethod
    def convert_tokens_to_string(self, tokens: Sequence[str]) -> str:
        """Join sub-word tokens, stripping continuation markers"""
        pass

    @abstractmethod
    def convert_tokens_to_ids(self, tokens: Sequence[str]) -> List[int]:
        """Vocabulary ids; unknown tokens map to unk_token_id"""
        pass


class ImageProcessorAdapter(ABC):
    """Image processor contract"""

    @abstractmethod
    def preprocess(self, image_source: Any) -> ProcessedImage:
        """
        Decode, resize and normalize one image.

        Raises:
            InputValidationError: if the source cannot be decoded
        """
        pass


class ModelRuntime(ABC):
    """
    Model runtime contract.

    run() must be deterministic for identical inputs and weights.
    Concurrent calls are safe only where the implementation says so.
    """

    @property
    @abstractmethod
    def config(self) -> ModelConfig:
        pass

    @abstractmethod
    def run(self, inputs: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Forward pass.

        Raises:
            InferenceError: on any runtime failure
        """
        pass

    def get_parameter(self, name: str) -> np.ndarray:
        """Read a named learned parameter (e.g. CLIP's logit_scale)"""
        raise NotImplementedError(f"{self.__class__.__name__} exposes no parameters")
