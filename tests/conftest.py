"""Shared fixtures for flowsketch tests."""

import pytest

from flowsketch.core.document import Document
from flowsketch.core.parser import load


SAMPLE_FLOWCHART = """flowchart TD
  A[Start] --> B{Check}
  B -->|yes| C(Done)
"""


class FakeExporter:
    """Records rasterize calls instead of rendering."""

    def __init__(self, payload: bytes = b"\x89PNG fake"):
        self.payload = payload
        self.calls: list[tuple[str, float]] = []

    def rasterize(self, svg: str, scale: float) -> bytes:
        self.calls.append((svg, scale))
        return self.payload


@pytest.fixture
def sample_text():
    return SAMPLE_FLOWCHART


@pytest.fixture
def sample_graph():
    return load(SAMPLE_FLOWCHART)


@pytest.fixture
def document():
    return Document.from_text(SAMPLE_FLOWCHART)


@pytest.fixture
def fake_exporter():
    return FakeExporter()
