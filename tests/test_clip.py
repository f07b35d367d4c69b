"""
Unit tests for ClipPipeline (zero-shot image classification)
"""

import numpy as np
import pytest

from fakes import FakeRuntime
from taskpipe.core.errors import InputValidationError
from taskpipe.pipelines.clip import ClipPipeline
from taskpipe.pipelines.types import PipelineSpec, PipelineTask

LABELS = ["dog", "cat", "tiger"]


def make_pipeline(tokenizer, image_processor, text_embeds, image_embed, logit_scale=np.log(100.0)):
    def outputs(inputs):
        return {
            "text_embeds": np.asarray(text_embeds, dtype=np.float64),
            "image_embeds": np.asarray([image_embed], dtype=np.float64),
        }

    runtime = FakeRuntime(outputs, parameters={"logit_scale": np.array(logit_scale)})
    spec = PipelineSpec(task=PipelineTask.ZERO_SHOT_IMAGE_CLASSIFICATION, model="fake/clip")
    pipeline = ClipPipeline(spec, runtime=runtime, tokenizer=tokenizer, image_processor=image_processor)
    return pipeline, runtime


class TestClipPipeline:
    """Tests for CLIP contrastive scoring"""

    def test_best_matching_label_first(self, tokenizer, image_processor):
        # Arrange: the image embedding is closest to 'cat', then 'tiger'
        pipeline, _ = make_pipeline(
            tokenizer, image_processor,
            text_embeds=[[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.8, 0.0, 0.6]],
            image_embed=[2.0, 0.0, 0.5],
        )

        # Act
        result = pipeline("cats.jpg", LABELS)

        # Assert
        assert [p["label"] for p in result] == ["cat", "tiger", "dog"]
        assert sum(p["score"] for p in result) == pytest.approx(1.0, abs=1e-6)

    def test_logit_scale_sharpens_distribution(self, tokenizer, image_processor):
        embeds = dict(text_embeds=[[1.0, 0.0], [0.6, 0.8]], image_embed=[1.0, 0.0])
        sharp, _ = make_pipeline(tokenizer, image_processor, logit_scale=np.log(100.0), **embeds)
        flat, _ = make_pipeline(tokenizer, image_processor, logit_scale=0.0, **embeds)

        sharp_top = sharp("cats.jpg", ["a", "b"])[0]["score"]
        flat_top = flat("cats.jpg", ["a", "b"])[0]["score"]

        assert sharp_top > flat_top
        assert flat_top == pytest.approx(1 / (1 + np.exp(-0.4)))

    def test_template_applied_to_labels(self, tokenizer, image_processor):
        pipeline, runtime = make_pipeline(
            tokenizer, image_processor, text_embeds=[[1.0, 0.0], [0.0, 1.0]], image_embed=[1.0, 0.0],
        )

        pipeline("cats.jpg", ["cat", "dog"], hypothesis_template="A drawing of a {}")

        inputs = runtime.calls[0]
        tokens = tokenizer.convert_ids_to_tokens(inputs["input_ids"][1])
        assert tokens[1:5] == ["A", "drawing", "of", "a"]
        assert "dog" in tokens
        assert "pixel_values" in inputs

    def test_default_template(self, tokenizer, image_processor):
        pipeline, runtime = make_pipeline(
            tokenizer, image_processor, text_embeds=[[1.0, 0.0]], image_embed=[1.0, 0.0],
        )

        pipeline("cats.jpg", ["cat"])

        tokens = tokenizer.convert_ids_to_tokens(runtime.calls[0]["input_ids"][0])
        assert tokens[1:6] == ["This", "is", "a", "photo", "of"]

    def test_empty_labels_rejected_before_image_load(self, tokenizer, image_processor):
        pipeline, runtime = make_pipeline(tokenizer, image_processor, text_embeds=[], image_embed=[1.0])

        with pytest.raises(InputValidationError):
            pipeline("cats.jpg", [])
        assert image_processor.sources == []
        assert runtime.calls == []
