"""Exceptions raised by the playback library.

Validation errors are raised synchronously at the API boundary, before any timer
is armed, and never change engine state. Faults raised while a message is being
played are not raised to the caller; the engine converts them into
``conversation.error`` events.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.message import MessageStatus


class PlaybackError(Exception):
    """Base class for all errors raised by this library."""


class PlaybackValidationError(PlaybackError, ValueError):
    """Malformed input rejected before any state changes."""


class InvalidTransition(PlaybackValidationError):
    """A message status transition that the delivery-status graph does not allow."""

    def __init__(self, from_status: MessageStatus, to_status: MessageStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid status transition from {from_status.value} to {to_status.value}")


class InvalidIndex(PlaybackValidationError):
    """A message index outside the conversation's bounds."""

    def __init__(self, index: int, length: int) -> None:
        self.index = index
        self.length = length
        super().__init__(f"Invalid message index: {index} (conversation has {length} messages)")


class InvalidSpeed(PlaybackValidationError):
    """A playback speed outside the accepted range."""

    def __init__(self, speed: float, allowed: str) -> None:
        self.speed = speed
        super().__init__(f"Playback speed must be {allowed}, got {speed}")


class DuplicateMessageId(PlaybackValidationError):
    """Two messages in one conversation share an id."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Duplicate message ID found: {message_id}")


class ProcessingValidationError(PlaybackValidationError):
    """A message processing context that cannot be played."""
