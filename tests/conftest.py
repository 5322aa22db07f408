"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from novelmate.config import AppConfig, ContextConfig, DetectionConfig, SummaryConfig
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import Chapter, Novel
from novelmate.translator.llm import Capabilities, CapabilityResult

Reply = Union[str, CapabilityResult, Exception, Callable[[str], str]]


class FakeCapability:
    """Scripted capability that records the prompts it receives.

    ``reply`` may be a fixed text, a ``CapabilityResult``, an exception to
    raise, or a function of the prompt.
    """

    def __init__(self, reply: Reply = "") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def __call__(self, prompt: str) -> CapabilityResult:
        self.prompts.append(prompt)
        reply = self.reply
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, CapabilityResult):
            return reply
        if callable(reply):
            return CapabilityResult.success(reply(prompt))
        return CapabilityResult.success(reply)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Config pointing at a temporary library, independent of the environment."""
    return AppConfig(
        novels_dir=tmp_path / "novels",
        detection=DetectionConfig(prompt_chars=2000, truncate_fallback=False),
        context=ContextConfig(max_summaries=3),
        summary=SummaryConfig(enabled=True, input_chars=3000),
    )


@pytest.fixture
def library(app_config: AppConfig) -> NovelLibrary:
    return NovelLibrary(app_config.novels_dir)


@pytest.fixture
def novel(library: NovelLibrary) -> Novel:
    """A Korean novel with one untranslated chapter."""
    created = library.create_novel(Novel(title="나 혼자만 레벨업", author="추공"))
    library.add_chapter(
        created.id,
        Chapter(number=1, title="1화", source_text="김철수는 서울에 도착했다. 철수는 웃었다."),
    )
    return library.get_novel(created.id)


@pytest.fixture
def make_capabilities() -> Callable[..., Capabilities]:
    """Factory for capabilities with scripted replies."""

    def factory(
        extract: Optional[Reply] = "[]",
        translate: Optional[Reply] = "",
        summarize: Optional[Reply] = "A short summary.",
    ) -> Capabilities:
        return Capabilities(
            extract=FakeCapability(extract),
            translate=FakeCapability(translate),
            summarize=FakeCapability(summarize),
        )

    return factory
