"""
HuggingFace Transformers implementations of the adapter contracts.

- TransformersTokenizer: fast tokenizers (offset mapping required)
- TransformersImageProcessor: AutoImageProcessor + PIL image loading
- TorchModelRuntime: PyTorch models, numpy in / numpy out
"""

import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import requests
import torch
from PIL import Image, UnidentifiedImageError

from ..core.errors import InferenceError, InputValidationError, ResourceAcquisitionError
from .base_backend import (
    Encoding,
    ImageProcessorAdapter,
    ModelConfig,
    ModelRuntime,
    ProcessedImage,
    TokenizerAdapter,
)

logger = logging.getLogger(__name__)

DTYPE_MAP = {
    "float32": torch.float32,
    "float16": torch.float16,
    "bfloat16": torch.bfloat16,
    "fp32": torch.float32,
    "fp16": torch.float16,
    "bf16": torch.bfloat16,
}

IMAGE_FETCH_TIMEOUT = 30


class TransformersTokenizer(TokenizerAdapter):
    """Wraps a transformers fast tokenizer"""

    def __init__(self, tokenizer: Any, max_length: Optional[int] = None):
        if not getattr(tokenizer, "is_fast", False):
            raise ResourceAcquisitionError(
                f"{tokenizer.__class__.__name__} is not a fast tokenizer; "
                "character offsets are unavailable"
            )
        self._tokenizer = tokenizer
        self.max_length = max_length

    @classmethod
    def from_pretrained(cls, model_id: str, max_length: Optional[int] = None, **kwargs) -> "TransformersTokenizer":
        from transformers import AutoTokenizer

        logger.info(f"[Tokenizer] Loading tokenizer: {model_id}")
        return cls(AutoTokenizer.from_pretrained(model_id, use_fast=True, **kwargs), max_length=max_length)

    @property
    def mask_token(self) -> Optional[str]:
        return self._tokenizer.mask_token

    @property
    def mask_token_id(self) -> Optional[int]:
        return self._tokenizer.mask_token_id

    @property
    def unk_token_id(self) -> Optional[int]:
        return self._tokenizer.unk_token_id

    @property
    def model_input_names(self) -> List[str]:
        return list(self._tokenizer.model_input_names)

    def encode(self, text: str, text_pair: Optional[str] = None) -> Encoding:
        enc = self._tokenizer(
            text,
            text_pair,
            truncation=True,
            max_length=self.max_length,
            return_offsets_mapping=True,
            return_special_tokens_mask=True,
        )
        special = [bool(flag) for flag in enc["special_tokens_mask"]]
        offsets = [
            None if is_special else (int(start), int(end))
            for (start, end), is_special in zip(enc["offset_mapping"], special)
        ]
        return Encoding(
            ids=list(enc["input_ids"]),
            offsets=offsets,
            special_tokens_mask=special,
            attention_mask=list(enc["attention_mask"]),
            sequence_ids=list(enc.sequence_ids()),
            token_type_ids=list(enc["token_type_ids"]) if "token_type_ids" in enc else None,
        )

    def pad(self, encodings: Sequence[Encoding]) -> Dict[str, np.ndarray]:
        pad_id = self._tokenizer.pad_token_id or 0
        width = max(len(enc) for enc in encodings)

        def _padded(rows: List[List[int]], value: int) -> np.ndarray:
            return np.array([row + [value] * (width - len(row)) for row in rows], dtype=np.int64)

        inputs = {
            "input_ids": _padded([enc.ids for enc in encodings], pad_id),
            "attention_mask": _padded([enc.attention_mask for enc in encodings], 0),
        }
        if "token_type_ids" in self.model_input_names and all(
            enc.token_type_ids is not None for enc in encodings
        ):
            inputs["token_type_ids"] = _padded([enc.token_type_ids for enc in encodings], 0)
        return inputs

    def decode(self, ids: Sequence[int], skip_special_tokens: bool = True) -> str:
        return self._tokenizer.decode(list(ids), skip_special_tokens=skip_special_tokens)

    def convert_ids_to_tokens(self, ids: Sequence[int]) -> List[str]:
        return self._tokenizer.convert_ids_to_tokens(list(ids))

    def convert_tokens_to_string(self, tokens: Sequence[str]) -> str:
        return self._tokenizer.convert_tokens_to_string(list(tokens)).strip()

    def convert_tokens_to_ids(self, tokens: Sequence[str]) -> List[int]:
        return self._tokenizer.convert_tokens_to_ids(list(tokens))


def load_image(image_input: Any) -> Image.Image:
    """
    Turn a path, URL, data URI, numpy array or PIL image into an RGB PIL image.

    Raises:
        InputValidationError: if the input cannot be decoded
    """
    try:
        if isinstance(image_input, Image.Image):
            image = image_input
        elif isinstance(image_input, np.ndarray):
            image = Image.fromarray(image_input)
        elif isinstance(image_input, (str, Path)):
            source = str(image_input)
            if source.startswith("data:image"):
                image_data = source.split(",", 1)[1]
                image = Image.open(BytesIO(base64.b64decode(image_data, validate=True)))
            elif source.startswith(("http://", "https://")):
                response = requests.get(source, timeout=IMAGE_FETCH_TIMEOUT)
                response.raise_for_status()
                image = Image.open(BytesIO(response.content))
            else:
                image = Image.open(source)
        else:
            raise InputValidationError(f"Invalid image format: {type(image_input).__name__}")

        image.load()
    except InputValidationError:
        raise
    except (OSError, UnidentifiedImageError, binascii.Error, IndexError, TypeError, ValueError,
            requests.RequestException) as e:
        raise InputValidationError(f"Could not read image: {e}") from e

    if image.mode != "RGB":
        image = image.convert("RGB")
    return image


class TransformersImageProcessor(ImageProcessorAdapter):
    """Wraps a transformers image processor"""

    def __init__(self, processor: Any):
        self._processor = processor

    @classmethod
    def from_pretrained(cls, model_id: str, **kwargs) -> "TransformersImageProcessor":
        from transformers import AutoImageProcessor

        logger.info(f"[ImageProcessor] Loading image processor: {model_id}")
        return cls(AutoImageProcessor.from_pretrained(model_id, **kwargs))

    def preprocess(self, image_source: Any) -> ProcessedImage:
        image = load_image(image_source)
        inputs = self._processor(images=image, return_tensors="np")
        return ProcessedImage(
            pixel_values=np.asarray(inputs["pixel_values"]),
            original_size=image.size,
        )


class TorchModelRuntime(ModelRuntime):
    """
    Runs a transformers PyTorch model under torch.no_grad().

    Holds no per-call state; concurrent run() calls are as safe as the
    underlying torch module.
    """

    def __init__(self, model: Any, device: str = "cpu"):
        self.model = model
        self.device = device
        self._config = ModelConfig.from_id2label(getattr(model.config, "id2label", None) or {})

    @classmethod
    def from_pretrained(
        cls,
        model_id: str,
        model_class: str,
        device: str = "cpu",
        dtype: Optional[str] = None,
        **kwargs
    ) -> "TorchModelRuntime":
        import transformers

        auto_class = getattr(transformers, model_class)
        torch_dtype = DTYPE_MAP.get(dtype.lower()) if dtype else None

        logger.info(f"[Runtime] Loading {model_class}: {model_id} (device: {device})")
        model = auto_class.from_pretrained(model_id, torch_dtype=torch_dtype, **kwargs)
        model = model.to(device)
        model.eval()
        return cls(model, device=device)

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def dtype(self) -> torch.dtype:
        return next(self.model.parameters()).dtype

    def _to_tensor(self, value: np.ndarray) -> torch.Tensor:
        tensor = torch.from_numpy(np.ascontiguousarray(value))
        if tensor.is_floating_point():
            tensor = tensor.to(self.dtype)
        return tensor.to(self.device)

    def run(self, inputs: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        tensors = {name: self._to_tensor(value) for name, value in inputs.items()}
        try:
            with torch.no_grad():
                outputs = self.model(**tensors)
        except Exception as e:
            raise InferenceError(str(e)) from e

        return {
            name: value.detach().float().cpu().numpy()
            for name, value in outputs.items()
            if isinstance(value, torch.Tensor)
        }

    def get_parameter(self, name: str) -> np.ndarray:
        param = self.model.get_parameter(name)
        return param.detach().float().cpu().numpy()
