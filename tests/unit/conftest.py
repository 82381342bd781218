"""Unit test fixtures: a small in-memory corpus and knowledge base factories"""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from yc_knowledge.config import KnowledgeBaseConfig
from yc_knowledge.index_builder import build_index
from yc_knowledge.knowledge_base import KnowledgeBase
from yc_knowledge.models import KnowledgeIndex, ResourceMeta

from corpus_factory import FakeClock, make_resource


@pytest.fixture
def corpus() -> List[ResourceMeta]:
    """
    Six catalog entries.

    The first four are the "startup ideas" scenario: three titles about
    startup ideas plus one only mentioning ideas.
    """
    return [
        make_resource(
            "8z", "How to Get Startup Ideas", "Paul Graham",
            url="https://www.ycombinator.com/library/8z",
            topics=["idea"], founder_stage=["pre-idea", "idea"], lines=420, related=["8g", "DU"],
        ),
        make_resource(
            "8g", "How to get startup ideas", "Jared Friedman", type="video",
            topics=["idea"], founder_stage=["idea"], lines=180, has_transcript=True,
        ),
        make_resource(
            "DU", "Where do great startup ideas come from?", "Dalton Caldwell", type="podcast",
            topics=["idea", "founders"], founder_stage=["pre-idea"], lines=650,
        ),
        make_resource(
            "91", "Why smart people have bad ideas", "Paul Graham",
            topics=["mindset"], founder_stage=["idea", "building"], lines=150,
        ),
        make_resource(
            "JW", "How to Raise a Seed Round", "Geoff Ralston",
            topics=["fundraising"], founder_stage=["building", "launched"], lines=250,
            summary="A guide to raising your first round of funding.",
        ),
        make_resource(
            "DS", "Do Things that Don't Scale", "Paul Graham",
            topics=["growth", "getting-started"], founder_stage=["launched"], lines=300,
        ),
    ]


@pytest.fixture
def index(corpus) -> KnowledgeIndex:
    return build_index(corpus, generated_at="2025-01-01T00:00:00+00:00")


@pytest.fixture
def contents() -> Dict[str, str]:
    """Markdown bodies keyed by file_path (DU and 91 deliberately missing)"""
    return {
        "essays/8z.md": "# How to Get Startup Ideas\n\nThe way to get startup ideas is not to try to think of startup ideas.",
        "videos/8g.md": "# How to get startup ideas\n\nTranscript of the talk.",
        "essays/JW.md": "# How to Raise a Seed Round\n\nRaise money when you can.",
        "essays/DS.md": "# Do Things that Don't Scale\n\nRecruit users manually.",
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_kb(index, contents):
    """Factory for uninitialized knowledge bases over the test corpus"""

    def factory(
        config: Optional[KnowledgeBaseConfig] = None,
        index_loader=None,
        content_loader=None,
        **kwargs,
    ) -> KnowledgeBase:
        async def load_content(locator: str) -> str:
            return contents[locator]

        return KnowledgeBase(
            index_loader=index_loader or (lambda: index),
            content_loader=content_loader or load_content,
            config=config,
            **kwargs,
        )

    return factory


@pytest_asyncio.fixture
async def kb(make_kb) -> KnowledgeBase:
    """Initialized knowledge base over the test corpus"""
    knowledge_base = make_kb()
    await knowledge_base.initialize()
    return knowledge_base
