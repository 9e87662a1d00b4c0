"""Plays a single message: wait, type, send."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timezone

import attrs
from attrs import field

from ..errors import ProcessingValidationError
from ..models.conversation import MAX_PLAYBACK_SPEED, Conversation
from ..models.events import DebugEvent, DebugLevel, MessageSentEvent, MessageTypingStartedEvent, PlaybackEvent
from ..models.message import Message, MessageStatus, update_status
from .config import TimingConfig
from .timing import calculate_timing

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@attrs.frozen
class MessageProcessingContext:
    """Everything needed to play one message.

    `is_playing` is checked after each wait; when it returns False the message is
    abandoned silently. `sleep` and `clock` can be replaced in tests.
    """

    conversation: Conversation
    message: Message
    index: int
    playback_speed: float
    config: TimingConfig
    is_playing: Callable[[], bool]
    sleep: Callable[[float], Awaitable[object]] = field(default=asyncio.sleep)
    clock: Callable[[], datetime] = field(default=_utcnow)


def validate_message_for_processing(message: Message | None) -> None:
    if message is None:
        raise ProcessingValidationError("Message is missing")
    if message.content is None or message.content.is_empty:
        raise ProcessingValidationError(f"Message {message.id} content is empty")
    if message.sender is None:
        raise ProcessingValidationError(f"Message {message.id} sender is missing")
    if message.timing is None:
        raise ProcessingValidationError(f"Message {message.id} timing is missing")


def validate_processing_context(context: MessageProcessingContext) -> None:
    """Raises ProcessingValidationError if the context cannot be played."""
    if context.conversation is None:
        raise ProcessingValidationError("Conversation is missing")
    if context.message is None:
        raise ProcessingValidationError("Current message is missing")
    if not 0 <= context.index < len(context.conversation.messages):
        raise ProcessingValidationError(f"Invalid message index {context.index}")
    speed = context.playback_speed
    if not math.isfinite(speed) or speed <= 0 or speed > MAX_PLAYBACK_SPEED:
        raise ProcessingValidationError(f"Invalid playback speed {speed}")
    validate_message_for_processing(context.message)


async def process_message(context: MessageProcessingContext) -> AsyncIterator[PlaybackEvent]:
    """Play one message, yielding a debug event, then typing started, then sent.

    Validation happens before the first wait. If `context.is_playing()` is False after
    a wait, the generator ends without yielding further events. A message that is
    already past `sending` (e.g. replayed after a jump backwards) keeps its status.

    Raises:
        ProcessingValidationError: if the context is invalid.
        InvalidTransition: if the message cannot move to sent.
    """
    validate_processing_context(context)

    conversation_id = context.conversation.id
    message = context.message
    index = context.index
    timing = calculate_timing(message, context.playback_speed, context.config)

    yield DebugEvent(
        conversation_id,
        level=DebugLevel.INFO,
        message=f"Processing message {index}",
        payload={
            "message_id": message.id,
            "delay_before_typing": timing.delay_before_typing.total_seconds(),
            "typing_duration": timing.typing_duration.total_seconds(),
        },
    )

    await context.sleep(timing.delay_before_typing.total_seconds())
    if not context.is_playing():
        _logger.debug(f"Conversation {conversation_id} stopped during delay, aborting message {index}")
        return

    yield MessageTypingStartedEvent(conversation_id, message=message, index=index, duration=timing.typing_duration)

    await context.sleep(timing.typing_duration.total_seconds())
    if not context.is_playing():
        _logger.debug(f"Conversation {conversation_id} stopped during typing, aborting message {index}")
        return

    if message.status == MessageStatus.SENDING:
        message = update_status(message, MessageStatus.SENT, at=context.clock())
    elif message.status == MessageStatus.FAILED:
        # failed -> sent is not a valid move; let update_status raise
        update_status(message, MessageStatus.SENT)

    yield MessageSentEvent(conversation_id, message=message, index=index)
    _logger.debug(f"Message {index} of conversation {conversation_id} sent")
