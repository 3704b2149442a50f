"""
Shared fixtures for the test suite
"""
import json
import pytest


SAMPLE_DOCUMENTS = [
    {
        "title": "Quantum Needles in Classical Haystacks",
        "abstract": "We study search problems on quantum hardware.",
        "label": "quant-ph"
    },
    {
        "title": "Graph Neural Networks",
        "abstract": "A survey of message passing architectures. " * 10,
        "label": "cs.LG"
    },
    {
        "title": "Sorting Revisited",
        "abstract": "Finding a needle among sorted keys is easy.",
        "label": "cs.DS"
    },
]


@pytest.fixture
def sample_documents():
    return [dict(doc) for doc in SAMPLE_DOCUMENTS]


@pytest.fixture
def data_file(tmp_path, sample_documents):
    path = tmp_path / "shard.json"
    path.write_text(json.dumps(sample_documents), encoding="utf-8")
    return path
