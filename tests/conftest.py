"""
Pytest configuration and shared fixtures

Provides fake adapters so pipelines run without downloading models.
"""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeImageProcessor, FakeTokenizer  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """Integration tests download real models; run them only when asked"""
    if os.environ.get("TASKPIPE_RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set TASKPIPE_RUN_INTEGRATION=1 to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def tokenizer() -> FakeTokenizer:
    """
    Fake tokenizer that splits 'Matz' into 'Mat' + '##z'

    Returns:
        FakeTokenizer
    """
    return FakeTokenizer(
        vocab=["paris", "is", "the", "capital", "of", "france", "city", "."],
        splits={"Matz": ["Mat", "##z"]},
    )


@pytest.fixture
def image_processor() -> FakeImageProcessor:
    return FakeImageProcessor()
