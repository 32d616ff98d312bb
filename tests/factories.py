"""
Test data factories for generating test objects.

This module provides Factory Boy factories for UI message parts and messages
with realistic default values and easy customization.
"""

import uuid

import factory

from app.schemas.chat import (
    FilePart,
    ReasoningPart,
    SourceDocumentPart,
    SourceUrlPart,
    StepStartPart,
    TextPart,
    UIMessage,
)
from models import MessageRole


class TextPartFactory(factory.Factory):
    """Factory for text parts."""

    class Meta:
        model = TextPart

    text = factory.Faker("sentence", nb_words=8)


class ReasoningPartFactory(factory.Factory):
    """Factory for reasoning parts with provider metadata."""

    class Meta:
        model = ReasoningPart

    text = factory.Faker("paragraph", nb_sentences=2)
    provider_metadata = factory.LazyFunction(lambda: {"openai": {"reasoningTokens": 42}})


class FilePartFactory(factory.Factory):
    """Factory for file parts."""

    class Meta:
        model = FilePart

    media_type = "image/png"
    url = factory.Sequence(lambda n: f"https://files.example.com/upload-{n}.png")
    filename = factory.Sequence(lambda n: f"upload-{n}.png")


class SourceUrlPartFactory(factory.Factory):
    """Factory for source URL parts."""

    class Meta:
        model = SourceUrlPart

    source_id = factory.Sequence(lambda n: f"src-url-{n}")
    url = factory.Faker("url")
    title = factory.Faker("sentence", nb_words=4)
    provider_metadata = None


class SourceDocumentPartFactory(factory.Factory):
    """Factory for source document parts."""

    class Meta:
        model = SourceDocumentPart

    source_id = factory.Sequence(lambda n: f"src-doc-{n}")
    media_type = "application/pdf"
    title = factory.Faker("sentence", nb_words=3)
    filename = factory.Sequence(lambda n: f"report-{n}.pdf")
    provider_metadata = factory.LazyFunction(lambda: {"anthropic": {"page": 3}})


class StepStartPartFactory(factory.Factory):
    """Factory for step boundary parts."""

    class Meta:
        model = StepStartPart


class UIMessageFactory(factory.Factory):
    """Factory for UI messages with a single text part."""

    class Meta:
        model = UIMessage

    id = factory.LazyFunction(lambda: f"msg-{uuid.uuid4().hex[:16]}")
    role = MessageRole.USER
    parts = factory.LazyFunction(lambda: [TextPartFactory()])


def all_part_kinds():
    """One representative part of every supported kind, in a fixed order."""
    return [
        StepStartPartFactory(),
        ReasoningPartFactory(),
        TextPartFactory(),
        FilePartFactory(),
        SourceUrlPartFactory(),
        SourceDocumentPartFactory(),
    ]
