"""
Unit tests for the transformers adapters

TorchModelRuntime runs a tiny in-memory torch module; image loading uses
generated PIL images. No model downloads.
"""

import base64
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests
import torch
from PIL import Image

from taskpipe.backends.base_backend import TokenizerAdapter
from taskpipe.backends.transformers_backend import (
    TorchModelRuntime,
    TransformersImageProcessor,
    TransformersTokenizer,
    load_image,
)
from taskpipe.core.errors import InferenceError, InputValidationError, ResourceAcquisitionError


class TinyClassifier(torch.nn.Module):
    """Two-label linear classifier over summed token ids"""

    def __init__(self):
        super().__init__()
        self.config = SimpleNamespace(id2label={0: "NEGATIVE", 1: "POSITIVE"})
        self.linear = torch.nn.Linear(1, 2)
        self.logit_scale = torch.nn.Parameter(torch.tensor(2.5))
        with torch.no_grad():
            self.linear.weight.copy_(torch.tensor([[-1.0], [1.0]]))
            self.linear.bias.zero_()

    def forward(self, input_ids, attention_mask):
        features = (input_ids.float() * attention_mask).sum(dim=1, keepdim=True)
        return {"logits": self.linear(features), "hidden": [features]}


def png_bytes(size=(8, 6), mode="RGBA"):
    buffer = BytesIO()
    Image.new(mode, size).save(buffer, format="PNG")
    return buffer.getvalue()


class TestTorchModelRuntime:
    """Tests for the torch runtime adapter"""

    def test_run_returns_numpy(self):
        # Arrange
        runtime = TorchModelRuntime(TinyClassifier())
        inputs = {
            "input_ids": np.array([[1, 2, 0]], dtype=np.int64),
            "attention_mask": np.array([[1, 1, 0]], dtype=np.int64),
        }

        # Act
        outputs = runtime.run(inputs)

        # Assert: non-tensor outputs are dropped
        assert set(outputs) == {"logits"}
        assert isinstance(outputs["logits"], np.ndarray)
        assert outputs["logits"].tolist() == [[-3.0, 3.0]]

    def test_config_exposes_labels(self):
        runtime = TorchModelRuntime(TinyClassifier())

        assert runtime.config.id2label == {0: "NEGATIVE", 1: "POSITIVE"}
        assert runtime.config.label2id == {"NEGATIVE": 0, "POSITIVE": 1}

    def test_failure_raises_inference_error(self):
        runtime = TorchModelRuntime(TinyClassifier())

        with pytest.raises(InferenceError) as exc_info:
            runtime.run({"input_ids": np.array([[1, 2]], dtype=np.int64)})

        assert exc_info.value.__cause__ is not None
        assert str(exc_info.value) == str(exc_info.value.__cause__)

    def test_get_parameter(self):
        runtime = TorchModelRuntime(TinyClassifier())

        assert float(runtime.get_parameter("logit_scale")) == pytest.approx(2.5)

    def test_from_pretrained_uses_auto_class(self):
        # Arrange
        model = MagicMock()
        model.to.return_value = model
        model.config = SimpleNamespace(id2label={0: "LABEL_0"})
        auto_class = MagicMock()
        auto_class.from_pretrained.return_value = model

        # Act
        with patch("transformers.AutoModelForSequenceClassification", auto_class):
            runtime = TorchModelRuntime.from_pretrained(
                "org/model", "AutoModelForSequenceClassification", device="cpu", dtype="float32", revision="main",
            )

        # Assert
        auto_class.from_pretrained.assert_called_once_with("org/model", torch_dtype=torch.float32, revision="main")
        model.to.assert_called_once_with("cpu")
        model.eval.assert_called_once()
        assert runtime.config.id2label == {0: "LABEL_0"}


class TestLoadImage:
    """Tests for image source decoding"""

    def test_pil_image_converted_to_rgb(self):
        image = load_image(Image.new("L", (5, 5)))

        assert image.mode == "RGB"
        assert image.size == (5, 5)

    def test_numpy_array(self):
        image = load_image(np.zeros((6, 8, 3), dtype=np.uint8))

        assert image.size == (8, 6)

    def test_file_path(self, tmp_path):
        path = tmp_path / "cat.png"
        path.write_bytes(png_bytes())

        image = load_image(str(path))

        assert image.mode == "RGB"
        assert image.size == (8, 6)

    def test_data_uri(self):
        uri = "data:image/png;base64," + base64.b64encode(png_bytes()).decode()

        assert load_image(uri).size == (8, 6)

    def test_url(self):
        response = MagicMock(content=png_bytes())

        with patch("taskpipe.backends.transformers_backend.requests.get", return_value=response) as get:
            image = load_image("https://example.com/cat.png")

        get.assert_called_once()
        assert get.call_args.args == ("https://example.com/cat.png",)
        assert image.size == (8, 6)

    def test_url_failure(self):
        with patch(
            "taskpipe.backends.transformers_backend.requests.get",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            with pytest.raises(InputValidationError, match="unreachable"):
                load_image("https://example.com/cat.png")

    @pytest.mark.parametrize("source", [
        "/nonexistent/cat.png",
        "data:image/png;base64,not-base64!!",
        42,
    ])
    def test_unreadable_sources(self, source):
        with pytest.raises(InputValidationError):
            load_image(source)

    def test_image_processor_returns_pixel_values(self):
        processor = MagicMock(return_value={"pixel_values": np.zeros((1, 3, 224, 224))})
        adapter = TransformersImageProcessor(processor)

        processed = adapter.preprocess(Image.new("RGB", (10, 20)))

        assert processed.pixel_values.shape == (1, 3, 224, 224)
        assert processed.original_size == (10, 20)


class TestTransformersTokenizer:
    """Tests for the fast-tokenizer adapter"""

    @pytest.fixture
    def fast_tokenizer(self):
        from tokenizers import Tokenizer, decoders, models, pre_tokenizers, processors
        from transformers import PreTrainedTokenizerFast

        vocab = {"[PAD]": 0, "[UNK]": 1, "[CLS]": 2, "[SEP]": 3, "[MASK]": 4,
                 "ruby": 5, "is": 6, "by": 7, "mat": 8, "##z": 9, "who": 10, "?": 11}
        backend = Tokenizer(models.WordPiece(vocab, unk_token="[UNK]"))
        backend.pre_tokenizer = pre_tokenizers.BertPreTokenizer()
        backend.decoder = decoders.WordPiece()
        backend.post_processor = processors.TemplateProcessing(
            single="[CLS] $A [SEP]",
            pair="[CLS] $A [SEP] $B:1 [SEP]:1",
            special_tokens=[("[CLS]", 2), ("[SEP]", 3)],
        )
        return PreTrainedTokenizerFast(
            tokenizer_object=backend,
            unk_token="[UNK]", pad_token="[PAD]", cls_token="[CLS]",
            sep_token="[SEP]", mask_token="[MASK]",
        )

    def test_slow_tokenizer_rejected(self):
        with pytest.raises(ResourceAcquisitionError):
            TransformersTokenizer(SimpleNamespace(is_fast=False))

    def test_offsets_and_special_tokens(self, fast_tokenizer):
        # Arrange
        tokenizer = TransformersTokenizer(fast_tokenizer)

        # Act
        encoding = tokenizer.encode("ruby by matz")

        # Assert
        assert tokenizer.convert_ids_to_tokens(encoding.ids) == ["[CLS]", "ruby", "by", "mat", "##z", "[SEP]"]
        assert encoding.offsets[0] is None
        assert encoding.offsets[3:5] == [(8, 11), (11, 12)]
        assert encoding.special_tokens_mask == [True, False, False, False, False, True]

    def test_pair_sequence_ids(self, fast_tokenizer):
        tokenizer = TransformersTokenizer(fast_tokenizer)

        encoding = tokenizer.encode("who?", "ruby")

        assert encoding.sequence_ids == [None, 0, 0, None, 1, None]

    def test_pad_batch(self, fast_tokenizer):
        tokenizer = TransformersTokenizer(fast_tokenizer)

        inputs = tokenizer.pad(tokenizer.encode_batch(["ruby", "ruby is by matz"]))

        assert inputs["input_ids"].shape == (2, 7)
        assert inputs["input_ids"].dtype == np.int64
        assert inputs["attention_mask"][0].tolist() == [1, 1, 1, 0, 0, 0, 0]

    def test_mask_token(self, fast_tokenizer):
        tokenizer = TransformersTokenizer(fast_tokenizer)

        assert tokenizer.mask_token == "[MASK]"
        assert tokenizer.mask_token_id == 4
        assert tokenizer.convert_tokens_to_string(["mat", "##z"]) == "matz"

    def test_tokens_to_ids_maps_unknown_to_unk(self, fast_tokenizer):
        tokenizer = TransformersTokenizer(fast_tokenizer)

        assert tokenizer.convert_tokens_to_ids(["ruby", "python"]) == [5, 1]
        assert tokenizer.unk_token_id == 1

    def test_adapter_without_tokens_to_ids_cannot_be_built(self):
        class PartialTokenizer(TransformersTokenizer):
            convert_tokens_to_ids = TokenizerAdapter.convert_tokens_to_ids

        with pytest.raises(TypeError):
            PartialTokenizer(SimpleNamespace(is_fast=True))
