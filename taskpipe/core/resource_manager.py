"""
Resource Manager
================

Resolves model/tokenizer/processor files and loads the handles a pipeline
needs, reporting progress to the caller's callback.

Responsibilities:
- Resolve each required file through the HuggingFace cache (or a local directory)
- Emit one InitiateEvent per file, before it is resolved
- Load tokenizer, image processor and model runtime
- Memoize loaded handles per request (acquire() is idempotent)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from huggingface_hub import hf_hub_download
from huggingface_hub.errors import EntryNotFoundError, HfHubHTTPError

from ..backends.base_backend import ImageProcessorAdapter, ModelRuntime, TokenizerAdapter
from ..backends.transformers_backend import (
    TorchModelRuntime,
    TransformersImageProcessor,
    TransformersTokenizer,
)
from ..config import HUB_CONFIG, INFERENCE_CONFIG
from .errors import ResourceAcquisitionError
from .message_types import InitiateEvent, ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)
PREFIX = "[ResourceManager]"

# (filename, required)
TOKENIZER_FILES: Tuple[Tuple[str, bool], ...] = (
    ("tokenizer.json", False),
    ("tokenizer_config.json", False),
)
PROCESSOR_FILES: Tuple[Tuple[str, bool], ...] = (
    ("preprocessor_config.json", True),
)
MODEL_CONFIG_FILE = "config.json"
# First one found wins; sharded checkpoints are left to from_pretrained
WEIGHT_FILES: Tuple[str, ...] = ("model.safetensors", "pytorch_model.bin")


@dataclass(frozen=True)
class ResourceRequest:
    """Everything needed to load the handles for one pipeline"""
    model: str
    model_class: str
    tokenizer: Optional[str] = None
    needs_tokenizer: bool = True
    needs_image_processor: bool = False
    device: str = "cpu"
    revision: Optional[str] = None
    cache_dir: Optional[str] = None
    local_files_only: bool = False


@dataclass
class LoadedResources:
    """Handles shared read-only by a pipeline for its lifetime"""
    runtime: ModelRuntime
    tokenizer: Optional[TokenizerAdapter] = None
    image_processor: Optional[ImageProcessorAdapter] = None


class ResourceManager:
    """
    Acquires pipeline resources and reports progress.

    Events are delivered synchronously on the calling thread, in order.
    """

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        # Default sink, used when a call does not pass its own
        self.progress_callback = progress_callback
        self._loaded: Dict[ResourceRequest, Tuple[LoadedResources, List[InitiateEvent]]] = {}

    def _emit(self, event: ProgressEvent, progress_callback: Optional[ProgressCallback] = None) -> None:
        sink = progress_callback or self.progress_callback
        if sink is not None:
            sink(event)

    def resolve_file(
        self,
        request: ResourceRequest,
        repo: str,
        filename: str,
        required: bool = True,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Optional[str]:
        """
        Resolve one file to a local path, emitting its InitiateEvent first.

        Returns:
            Local path, or None when an optional file does not exist
        """
        self._emit(InitiateEvent(name=repo, file=filename), progress_callback)

        local_dir = Path(repo)
        if local_dir.is_dir():
            path = local_dir / filename
            if path.is_file():
                return str(path)
            if required:
                raise ResourceAcquisitionError(f"{filename} not found in {repo}")
            return None

        try:
            return hf_hub_download(
                repo_id=repo,
                filename=filename,
                revision=request.revision or HUB_CONFIG.revision,
                cache_dir=request.cache_dir or HUB_CONFIG.cache_dir,
                local_files_only=request.local_files_only or HUB_CONFIG.local_files_only,
            )
        except EntryNotFoundError as e:
            if required:
                raise ResourceAcquisitionError(f"{filename} not found in {repo}: {e}") from e
            logger.debug(f"{PREFIX} Optional file {filename} not available for {repo}")
            return None
        except (HfHubHTTPError, OSError, ValueError) as e:
            logger.error(f"{PREFIX} ❌ Could not resolve {repo}/{filename}: {e}")
            raise ResourceAcquisitionError(f"Could not resolve {repo}/{filename}: {e}") from e

    def _resolve_weights(self, request: ResourceRequest, progress_callback: ProgressCallback) -> Optional[str]:
        for filename in WEIGHT_FILES:
            path = self.resolve_file(request, request.model, filename, False, progress_callback)
            if path:
                return path
        return None

    def acquire(
        self,
        request: ResourceRequest,
        progress_callback: Optional[ProgressCallback] = None
    ) -> LoadedResources:
        """
        Resolve files and load handles for `request`.

        Events go to `progress_callback`, or to the manager's default sink when
        none is given. Repeated calls with an equal request return the memoized
        handles and replay the recorded InitiateEvents to the caller's sink.

        Raises:
            ResourceAcquisitionError: if any required file or handle fails to load
        """
        if request in self._loaded:
            logger.debug(f"{PREFIX} Reusing loaded resources for {request.model}")
            resources, events = self._loaded[request]
            for event in events:
                self._emit(event, progress_callback)
            return resources

        logger.info(f"{PREFIX} Acquiring resources for {request.model} ({request.model_class})")
        tokenizer_repo = request.tokenizer or request.model
        events: List[InitiateEvent] = []

        def record(event: InitiateEvent) -> None:
            events.append(event)
            self._emit(event, progress_callback)

        if request.needs_tokenizer:
            for filename, required in TOKENIZER_FILES:
                self.resolve_file(request, tokenizer_repo, filename, required, record)
        if request.needs_image_processor:
            for filename, required in PROCESSOR_FILES:
                self.resolve_file(request, tokenizer_repo, filename, required, record)
        self.resolve_file(request, request.model, MODEL_CONFIG_FILE, True, record)
        self._resolve_weights(request, record)

        hub_kwargs = {
            "revision": request.revision or HUB_CONFIG.revision,
            "cache_dir": request.cache_dir or HUB_CONFIG.cache_dir,
            "local_files_only": request.local_files_only or HUB_CONFIG.local_files_only,
        }
        dtype = INFERENCE_CONFIG.cuda_dtype if request.device.startswith("cuda") else INFERENCE_CONFIG.cpu_dtype

        try:
            tokenizer = None
            image_processor = None
            if request.needs_tokenizer:
                tokenizer = TransformersTokenizer.from_pretrained(
                    tokenizer_repo, max_length=INFERENCE_CONFIG.max_length, **hub_kwargs
                )
            if request.needs_image_processor:
                image_processor = TransformersImageProcessor.from_pretrained(tokenizer_repo, **hub_kwargs)
            runtime = TorchModelRuntime.from_pretrained(
                request.model,
                request.model_class,
                device=request.device,
                dtype=dtype,
                **hub_kwargs
            )
        except ResourceAcquisitionError:
            raise
        except Exception as e:
            logger.error(f"{PREFIX} ❌ Load failed for {request.model}: {e}", exc_info=True)
            raise ResourceAcquisitionError(f"Failed to load {request.model}: {e}") from e

        resources = LoadedResources(runtime=runtime, tokenizer=tokenizer, image_processor=image_processor)
        self._loaded[request] = (resources, events)
        logger.info(f"{PREFIX} ✅ Resources ready for {request.model} on {request.device}")
        return resources
