"""Events emitted by the playback engine, and predicates for selecting them."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar, TypeAlias

import attrs
from attrs import field
from frozendict import frozendict

from ..util.attrutil import frozendict_converter
from .conversation import ConversationProgress
from .message import Message


class EventType(str, Enum):
    CONVERSATION_DEBUG = "conversation.debug"
    CONVERSATION_STARTED = "conversation.started"
    CONVERSATION_PAUSED = "conversation.paused"
    CONVERSATION_PROGRESS = "conversation.progress"
    CONVERSATION_COMPLETED = "conversation.completed"
    CONVERSATION_ERROR = "conversation.error"
    CONVERSATION_SPEED_CHANGED = "conversation.speed_changed"
    MESSAGE_TYPING_STARTED = "message.typing_started"
    MESSAGE_SENT = "message.sent"
    FLOW_TRIGGERED = "flow.triggered"


class DebugLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def _event_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@attrs.frozen
class PlaybackEvent:
    """Base class of all engine events.

    Each concrete event class has a fixed `type`. Every event carries the id of the
    conversation it belongs to, its own unique id, and the instant it was created.
    """

    type: ClassVar[EventType]

    conversation_id: str
    id: str = field(kw_only=True, factory=_event_id)
    timestamp: datetime = field(kw_only=True, factory=_utcnow)


@attrs.frozen
class DebugEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_DEBUG

    level: DebugLevel
    message: str
    payload: frozendict[str, Any] = field(factory=frozendict, converter=frozendict_converter)


@attrs.frozen
class ConversationStartedEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_STARTED


@attrs.frozen
class ConversationPausedEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_PAUSED


@attrs.frozen
class ConversationProgressEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_PROGRESS

    progress: ConversationProgress


@attrs.frozen
class ConversationCompletedEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_COMPLETED


@attrs.frozen
class ConversationErrorEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_ERROR

    error: str


@attrs.frozen
class SpeedChangedEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.CONVERSATION_SPEED_CHANGED

    speed: float
    previous_speed: float


@attrs.frozen
class MessageTypingStartedEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.MESSAGE_TYPING_STARTED

    message: Message
    index: int
    duration: timedelta


@attrs.frozen
class MessageSentEvent(PlaybackEvent):
    type: ClassVar[EventType] = EventType.MESSAGE_SENT

    message: Message
    index: int


@attrs.frozen
class FlowTriggeredEvent(PlaybackEvent):
    """A sent message opened an embedded flow. The flow itself is not run."""

    type: ClassVar[EventType] = EventType.FLOW_TRIGGERED

    message: Message
    flow_id: str | None = None
    flow_token: str | None = None
    flow_data: frozendict[str, Any] = field(factory=frozendict, converter=frozendict_converter)


EventPredicate: TypeAlias = Callable[[PlaybackEvent], bool]


def conversation_events(event: PlaybackEvent) -> bool:
    return event.type.value.startswith("conversation.")


def message_events(event: PlaybackEvent) -> bool:
    return event.type.value.startswith("message.")


def flow_events(event: PlaybackEvent) -> bool:
    return event.type.value.startswith("flow.")


def error_events(event: PlaybackEvent) -> bool:
    """Error events, including debug events logged at error level."""
    if isinstance(event, ConversationErrorEvent):
        return True
    return isinstance(event, DebugEvent) and event.level == DebugLevel.ERROR


def debug_events(event: PlaybackEvent) -> bool:
    return isinstance(event, DebugEvent)


def by_conversation_id(conversation_id: str) -> EventPredicate:
    return lambda event: event.conversation_id == conversation_id


def by_event_type(*types: EventType) -> EventPredicate:
    wanted = frozenset(types)
    return lambda event: event.type in wanted


def by_time_range(start: datetime, end: datetime) -> EventPredicate:
    """Events whose timestamp falls within [start, end]."""
    return lambda event: start <= event.timestamp <= end
