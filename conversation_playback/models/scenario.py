"""Scenario models: authored templates from which conversations are built."""

from __future__ import annotations

from datetime import timedelta

import attrs
from attrs import field

from .conversation import ConversationSettings
from .message import MessageContent, MessageType
from .roles import SenderType


@attrs.frozen
class MessageTemplate:
    """A message as authored in a scenario, before ids and timing are assigned.

    Delay and typing duration are optional; missing values are filled in by the factory.
    """

    sender: SenderType
    type: MessageType
    content: MessageContent
    delay_before_typing: timedelta | None = None
    typing_duration: timedelta | None = None


@attrs.frozen
class ScenarioMetadata:
    title: str
    description: str | None = None
    tags: tuple[str, ...] = field(default=(), converter=tuple)
    business_name: str = ""
    business_phone_number: str | None = None
    user_phone_number: str | None = None
    language: str = "en"
    category: str | None = None


@attrs.frozen
class Scenario:
    """A named, reusable conversation script."""

    id: str
    metadata: ScenarioMetadata
    messages: tuple[MessageTemplate, ...] = field(converter=tuple)
    settings: ConversationSettings = field(factory=ConversationSettings)

    def __str__(self) -> str:
        return f"Scenario {self.id}: {self.metadata.title} ({len(self.messages)} messages)"
