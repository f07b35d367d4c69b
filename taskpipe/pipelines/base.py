"""
BasePipeline - Abstract base class for all task pipelines

Each specialized pipeline inherits from this and implements:
- pipeline_type() - Task identifier
- preprocess() - Input validation and encoding
- postprocess() - Tensors to structured results

The shared flow is preprocess -> runtime.run() -> postprocess. All inputs of a
call are preprocessed (and therefore validated) before the runtime is invoked.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError

from ..backends.base_backend import ImageProcessorAdapter, ModelRuntime, TokenizerAdapter
from ..core.errors import ConfigurationError
from .types import PipelineSpec

logger = logging.getLogger(__name__)

ModelInputs = Optional[Dict[str, np.ndarray]]


class CallOptions(BaseModel):
    """Base for per-task call options; unknown keys are rejected"""
    model_config = ConfigDict(extra="forbid", frozen=True)


def validate_options(options_class: Type[CallOptions], options: Dict[str, Any]) -> CallOptions:
    """Build an options model, turning validation failures into ConfigurationError"""
    try:
        return options_class(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid options for {options_class.__name__}: {e}") from e


class BasePipeline(ABC):
    """
    Base class for all task pipelines.

    Handles are shared read-only for the pipeline's lifetime; calls keep no state.
    """

    options_class: Type[CallOptions] = CallOptions

    def __init__(
        self,
        spec: PipelineSpec,
        runtime: ModelRuntime,
        tokenizer: Optional[TokenizerAdapter] = None,
        image_processor: Optional[ImageProcessorAdapter] = None,
    ):
        self.spec = spec
        self.runtime = runtime
        self.tokenizer = tokenizer
        self.image_processor = image_processor
        # Fail fast on bad defaults
        self.default_options = validate_options(self.options_class, dict(spec.default_options))

    @abstractmethod
    def pipeline_type(self) -> str:
        """Return the pipeline task (e.g. 'fill-mask')"""
        pass

    @property
    def model_id(self) -> str:
        return self.spec.model

    def parse_options(self, options: Dict[str, Any]) -> CallOptions:
        merged = {**self.default_options.model_dump(exclude_unset=True), **options}
        return validate_options(self.options_class, merged)

    def __call__(self, inputs: Any, *args, **options) -> Any:
        """A list input is a batch; anything else is a single input"""
        if isinstance(inputs, list):
            return self.call_batch(inputs, *args, **options)
        return self.call_one(inputs, *args, **options)

    def call_one(self, inputs: Any, *args, **options) -> Any:
        opts = self.parse_options(options)
        return self.process([inputs], args, opts)[0]

    def call_batch(self, inputs: Sequence[Any], *args, **options) -> List[Any]:
        opts = self.parse_options(options)
        return self.process(list(inputs), args, opts)

    def process(self, inputs: List[Any], args: Tuple[Any, ...], options: CallOptions) -> List[Any]:
        """One forward pass per input; override to batch"""
        prepared = [self.preprocess(item, *args, options=options) for item in inputs]
        results = []
        for model_inputs, context in prepared:
            outputs = self.forward(model_inputs)
            results.append(self.postprocess(outputs, context, options))
        return results

    @abstractmethod
    def preprocess(self, inputs: Any, *args, options: CallOptions) -> Tuple[ModelInputs, Any]:
        """
        Validate and encode one input.

        Returns:
            (model inputs, context for postprocess); model inputs may be None
            when no forward pass is needed
        """
        pass

    def forward(self, model_inputs: ModelInputs) -> Dict[str, np.ndarray]:
        if model_inputs is None:
            return {}
        return self.runtime.run(model_inputs)

    @abstractmethod
    def postprocess(self, outputs: Dict[str, np.ndarray], context: Any, options: CallOptions) -> Any:
        pass

    def require_tokenizer(self) -> TokenizerAdapter:
        if self.tokenizer is None:
            raise ConfigurationError(f"{self.__class__.__name__} requires a tokenizer")
        return self.tokenizer

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration"""
        return {
            "model_id": self.spec.model,
            "tokenizer_id": self.spec.tokenizer or self.spec.model,
            "pipeline_type": self.pipeline_type(),
            "default_options": self.default_options.model_dump(),
        }
