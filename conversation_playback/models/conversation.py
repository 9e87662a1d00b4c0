"""Conversation models: an ordered, timed script plus its playback bookkeeping."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import attrs
from attrs import field

from ..errors import DuplicateMessageId, InvalidIndex, InvalidSpeed
from .message import Message, MessageStatus, MessageType, update_status
from .roles import SenderType

_logger = logging.getLogger(__name__)


class ConversationStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


MAX_PLAYBACK_SPEED = 5.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_speed(instance: Any, attribute: attrs.Attribute, value: float) -> None:
    if not math.isfinite(value) or value <= 0 or value > MAX_PLAYBACK_SPEED:
        raise InvalidSpeed(value, f"greater than 0 and at most {MAX_PLAYBACK_SPEED}")


@attrs.frozen
class ConversationMetadata:
    """Descriptive data about a conversation; not used by playback."""

    id: str
    title: str
    description: str | None = None
    tags: tuple[str, ...] = field(default=(), converter=tuple)
    business_name: str = ""
    business_phone_number: str | None = None
    user_phone_number: str | None = None
    language: str = "en"
    category: str | None = None
    created_at: datetime = field(factory=_utcnow)
    updated_at: datetime = field(factory=_utcnow)


@attrs.frozen
class ConversationSettings:
    playback_speed: float = field(default=1.0, validator=_validate_speed)
    auto_advance: bool = True
    show_typing_indicators: bool = True
    show_read_receipts: bool = True
    enable_sounds: bool = False
    debug_mode: bool = False


@attrs.frozen
class ConversationProgress:
    current_index: int
    total_messages: int
    elapsed: timedelta
    remaining: timedelta
    completion_percentage: float


@attrs.frozen
class Conversation:
    """A scripted exchange of messages and where playback stands within it.

    Conversations are immutable: every lifecycle operation returns a new instance.
    Construction checks that message ids are unique and that `current_index`
    points inside the message list (index 0 is allowed for an empty list).
    """

    metadata: ConversationMetadata
    messages: tuple[Message, ...] = field(default=(), converter=tuple)
    settings: ConversationSettings = field(factory=ConversationSettings)
    status: ConversationStatus = ConversationStatus.IDLE
    current_index: int = 0
    start_time: datetime | None = None
    pause_time: datetime | None = None
    total_paused_time: timedelta = timedelta(0)
    last_error: str | None = None

    def __attrs_post_init__(self) -> None:
        seen: set[str] = set()
        for message in self.messages:
            if message.id in seen:
                raise DuplicateMessageId(message.id)
            seen.add(message.id)

        if not 0 <= self.current_index <= max(0, len(self.messages) - 1):
            raise InvalidIndex(self.current_index, len(self.messages))

        for prev, cur in zip(self.messages, self.messages[1:]):
            if cur.timing.queue_at < prev.timing.queue_at:
                _logger.warning(f"Conversation {self.metadata.id}: message {cur.id} is queued before {prev.id}")
                break

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def estimated_duration(self) -> timedelta:
        """Total authored animation time of all messages, at speed 1."""
        return sum((msg.total_animation_time for msg in self.messages), timedelta(0))

    # Queries

    @property
    def current_message(self) -> Message | None:
        if 0 <= self.current_index < len(self.messages):
            return self.messages[self.current_index]
        return None

    @property
    def next_message(self) -> Message | None:
        if self.current_index + 1 < len(self.messages):
            return self.messages[self.current_index + 1]
        return None

    @property
    def previous_message(self) -> Message | None:
        if 0 < self.current_index <= len(self.messages):
            return self.messages[self.current_index - 1]
        return None

    @property
    def can_go_back(self) -> bool:
        return self.current_index > 0

    @property
    def can_go_forward(self) -> bool:
        return self.current_index < len(self.messages) - 1

    @property
    def is_playing(self) -> bool:
        return self.status == ConversationStatus.PLAYING

    @property
    def is_paused(self) -> bool:
        return self.status == ConversationStatus.PAUSED

    @property
    def is_completed(self) -> bool:
        return self.status == ConversationStatus.COMPLETED

    @property
    def has_error(self) -> bool:
        return self.status == ConversationStatus.ERROR

    @property
    def is_empty(self) -> bool:
        return len(self.messages) == 0

    def messages_up_to(self, index: int) -> tuple[Message, ...]:
        """Messages from the start through `index`, inclusive."""
        return self.messages[:max(0, index + 1)]

    def messages_by_sender(self, sender: SenderType) -> tuple[Message, ...]:
        return tuple(msg for msg in self.messages if msg.sender == sender)

    def messages_by_type(self, type: MessageType) -> tuple[Message, ...]:
        return tuple(msg for msg in self.messages if msg.type == type)

    def find_message(self, message_id: str) -> Message | None:
        return next((msg for msg in self.messages if msg.id == message_id), None)

    def elapsed(self, now: datetime | None = None) -> timedelta:
        """Wall time spent playing, excluding pauses."""
        if self.start_time is None:
            return timedelta(0)
        if self.pause_time is not None:
            now = self.pause_time
        elif now is None:
            now = _utcnow()
        return max(timedelta(0), now - self.start_time - self.total_paused_time)

    def remaining(self) -> timedelta:
        """Animation time of the messages not yet played, at the current speed."""
        remaining = sum((msg.total_animation_time for msg in self.messages[self.current_index:]), timedelta(0))
        return remaining / self.settings.playback_speed

    def progress(self, now: datetime | None = None) -> ConversationProgress:
        total = len(self.messages)
        if self.is_completed:
            percentage = 100.0
            remaining = timedelta(0)
        else:
            percentage = self.current_index / total * 100 if total else 0.0
            remaining = self.remaining()
        return ConversationProgress(
            current_index=self.current_index,
            total_messages=total,
            elapsed=self.elapsed(now),
            remaining=remaining,
            completion_percentage=percentage,
        )

    # Message list operations

    def add_message(self, message: Message) -> Conversation:
        """Return new conversation with the message appended.

        Raises:
            DuplicateMessageId: if a message with the same id is already present.
        """
        return self.add_messages((message,))

    def add_messages(self, messages: Iterable[Message]) -> Conversation:
        return attrs.evolve(self, messages=self.messages + tuple(messages),
                            metadata=attrs.evolve(self.metadata, updated_at=_utcnow()))

    def remove_message(self, message_id: str) -> Conversation:
        """Return new conversation without the message; the cursor is clamped to the new length."""
        messages = tuple(msg for msg in self.messages if msg.id != message_id)
        if len(messages) == len(self.messages):
            return self
        return attrs.evolve(
            self,
            messages=messages,
            current_index=min(self.current_index, max(0, len(messages) - 1)),
            metadata=attrs.evolve(self.metadata, updated_at=_utcnow()),
        )

    def replace_message(self, message: Message) -> Conversation:
        """Return new conversation with the message of the same id replaced."""
        if self.find_message(message.id) is None:
            raise KeyError(message.id)
        return attrs.evolve(self, messages=tuple(message if msg.id == message.id else msg for msg in self.messages))

    def update_message_status(self, message_id: str, status: MessageStatus, at: datetime | None = None) -> Conversation:
        """Move one message along the delivery-status graph.

        Raises:
            KeyError: if no message has this id.
            InvalidTransition: if the status move is not allowed.
        """
        message = self.find_message(message_id)
        if message is None:
            raise KeyError(message_id)
        return self.replace_message(update_status(message, status, at))

    # Lifecycle

    def play(self, now: datetime | None = None) -> Conversation:
        """Start or resume playback. A completed conversation starts over; error state is kept."""
        now = now or _utcnow()
        match self.status:
            case ConversationStatus.PLAYING | ConversationStatus.ERROR:
                return self
            case ConversationStatus.COMPLETED:
                return self.reset().play(now)
            case ConversationStatus.PAUSED:
                paused_for = now - self.pause_time if self.pause_time is not None else timedelta(0)
                return attrs.evolve(
                    self,
                    status=ConversationStatus.PLAYING,
                    pause_time=None,
                    total_paused_time=self.total_paused_time + paused_for,
                )
            case _:
                return attrs.evolve(self, status=ConversationStatus.PLAYING, start_time=now, pause_time=None)

    def pause(self, now: datetime | None = None) -> Conversation:
        if not self.is_playing:
            return self
        return attrs.evolve(self, status=ConversationStatus.PAUSED, pause_time=now or _utcnow())

    def reset(self) -> Conversation:
        """Rewind to the first message with all messages back to sending."""
        return attrs.evolve(
            self,
            status=ConversationStatus.IDLE,
            current_index=0,
            start_time=None,
            pause_time=None,
            total_paused_time=timedelta(0),
            last_error=None,
            messages=tuple(msg.rewound() for msg in self.messages),
        )

    def jump_to(self, index: int) -> Conversation:
        """Move the cursor without changing the playback status.

        Raises:
            InvalidIndex: if index is outside [0, len(messages)).
        """
        if not 0 <= index < len(self.messages):
            raise InvalidIndex(index, len(self.messages))
        return attrs.evolve(self, current_index=index)

    def advance_to_next(self) -> Conversation:
        """Move to the next message, or mark the conversation completed after the last one.

        The cursor stays on the last message when completed.
        """
        if self.current_index < len(self.messages) - 1:
            return attrs.evolve(self, current_index=self.current_index + 1)
        return attrs.evolve(self, status=ConversationStatus.COMPLETED)

    def go_to_previous(self) -> Conversation:
        if self.current_index == 0:
            return self
        return attrs.evolve(self, current_index=self.current_index - 1)

    def set_error(self, error: BaseException | str) -> Conversation:
        return attrs.evolve(self, status=ConversationStatus.ERROR, last_error=str(error))

    def update_settings(self, **changes: Any) -> Conversation:
        return attrs.evolve(self, settings=attrs.evolve(self.settings, **changes))

    def __len__(self) -> int:
        return len(self.messages)

    def __str__(self) -> str:
        total = len(self.messages)
        if total == 0:
            return f"Conversation {self.id} (0 messages): <empty>"

        if total <= 20:
            messages_str = "\n".join(str(msg) for msg in self.messages)
        else:
            first = "\n".join(str(msg) for msg in self.messages[:10])
            last = "\n".join(str(msg) for msg in self.messages[-10:])
            messages_str = f"{first}\n...\n{last}"
        return f"Conversation {self.id} ({total} messages, {self.status.value}):\n{messages_str}"
