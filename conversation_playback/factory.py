"""Builds playable conversations from scenarios, filling in ids and default timings."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

import attrs
from attrs import field

from .models.conversation import Conversation, ConversationMetadata
from .models.message import Message, MessageContent, MessageTiming, MessageType
from .models.roles import SenderType
from .models.scenario import MessageTemplate, Scenario

# Spacing between the queue times of consecutive messages
QUEUE_SPACING = timedelta(seconds=2)

_TYPING_BY_TYPE = {
    MessageType.IMAGE: timedelta(milliseconds=2500),
    MessageType.VIDEO: timedelta(milliseconds=2500),
    MessageType.AUDIO: timedelta(milliseconds=1800),
    MessageType.DOCUMENT: timedelta(milliseconds=2000),
    MessageType.INTERACTIVE: timedelta(milliseconds=3000),
    MessageType.TEMPLATE: timedelta(milliseconds=2200),
    MessageType.FLOW: timedelta(milliseconds=3500),
}


def default_delay(sender: SenderType, index: int) -> timedelta:
    """The first message comes quicker; the business takes a little longer than the user."""
    base = 500 if index == 0 else 1500
    multiplier = 1.2 if sender == SenderType.BUSINESS else 1.0
    return timedelta(milliseconds=round(base * multiplier))


def default_typing_duration(content: MessageContent, type: MessageType) -> timedelta:
    """50ms per character of text, between 0.8s and 4s; fixed durations for other types."""
    if type == MessageType.TEXT:
        length = len(content.text or "")
        return timedelta(milliseconds=max(800, min(4000, length * 50)))
    return _TYPING_BY_TYPE.get(type, timedelta(milliseconds=1500))


def _counter(prefix: str) -> Callable[[], str]:
    numbers: Iterator[int] = itertools.count(1)
    return lambda: f"{prefix}_{next(numbers)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@attrs.frozen
class ConversationFactory:
    """Creates conversations from scenarios.

    Id generators and the clock can be replaced, e.g. to get reproducible output in tests.
    Each factory numbers its messages independently.
    """

    message_id_generator: Callable[[], str] = field(factory=lambda: _counter("msg"))
    conversation_id_generator: Callable[[], str] = field(factory=lambda: _counter("conv"))
    clock: Callable[[], datetime] = _utcnow
    delay_calculator: Callable[[SenderType, int], timedelta] = default_delay
    typing_calculator: Callable[[MessageContent, MessageType], timedelta] = default_typing_duration

    def create_message(self, template: MessageTemplate, index: int, now: datetime | None = None) -> Message:
        now = now or self.clock()
        delay = template.delay_before_typing
        if delay is None:
            delay = self.delay_calculator(template.sender, index)
        typing = template.typing_duration
        if typing is None:
            typing = self.typing_calculator(template.content, template.type)
        return Message(
            id=self.message_id_generator(),
            type=template.type,
            sender=template.sender,
            content=template.content,
            timing=MessageTiming(
                queue_at=now + index * QUEUE_SPACING,
                delay_before_typing=delay,
                typing_duration=typing,
            ),
            created_at=now,
        )

    def create_conversation(self, scenario: Scenario, conversation_id: str | None = None) -> Conversation:
        """Build an idle conversation with one message per template, in order."""
        now = self.clock()
        meta = scenario.metadata
        metadata = ConversationMetadata(
            id=conversation_id or self.conversation_id_generator(),
            title=meta.title,
            description=meta.description,
            tags=meta.tags,
            business_name=meta.business_name,
            business_phone_number=meta.business_phone_number,
            user_phone_number=meta.user_phone_number,
            language=meta.language,
            category=meta.category,
            created_at=now,
            updated_at=now,
        )
        messages = tuple(self.create_message(template, index, now) for index, template in enumerate(scenario.messages))
        return Conversation(metadata=metadata, messages=messages, settings=scenario.settings)


def text_message(sender: SenderType, text: str, delay_before_typing: timedelta | None = None,
                 typing_duration: timedelta | None = None) -> MessageTemplate:
    """Shorthand for a plain text template."""
    return MessageTemplate(
        sender=sender,
        type=MessageType.TEXT,
        content=MessageContent(text=text),
        delay_before_typing=delay_before_typing,
        typing_duration=typing_duration,
    )
