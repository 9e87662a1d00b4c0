"""Point-in-time summary of engine state."""

from __future__ import annotations

from datetime import timedelta

import attrs
from attrs import field
from frozendict import frozendict

from ..util.attrutil import frozendict_converter
from .conversation import Conversation
from .message import Message
from .roles import SenderType


def _no_typing() -> frozendict[SenderType, bool]:
    return frozendict({sender: False for sender in SenderType})


@attrs.frozen
class ProgressSnapshot:
    completion_percentage: float = 0.0
    elapsed: timedelta = timedelta(0)
    remaining: timedelta = timedelta(0)


@attrs.frozen
class PlaybackSnapshot:
    """What a renderer needs to draw the conversation at one instant."""

    conversation: Conversation | None = None
    is_playing: bool = False
    is_paused: bool = False
    is_completed: bool = False
    has_error: bool = False
    current_message_index: int = 0
    current_message: Message | None = None
    next_message: Message | None = None
    progress: ProgressSnapshot = field(factory=ProgressSnapshot)
    playback_speed: float = 1.0
    typing_states: frozendict[SenderType, bool] = field(factory=_no_typing, converter=frozendict_converter)
    error: str | None = None

    def is_typing(self, sender: SenderType) -> bool:
        return self.typing_states.get(sender, False)

    @staticmethod
    def of(conversation: Conversation | None, typing_states: frozendict[SenderType, bool] | None = None,
           playback_speed: float = 1.0) -> PlaybackSnapshot:
        """Snapshot of a conversation as currently held by the engine."""
        if conversation is None:
            return PlaybackSnapshot(playback_speed=playback_speed,
                                    typing_states=typing_states or _no_typing())
        progress = conversation.progress()
        return PlaybackSnapshot(
            conversation=conversation,
            is_playing=conversation.is_playing,
            is_paused=conversation.is_paused,
            is_completed=conversation.is_completed,
            has_error=conversation.has_error,
            current_message_index=conversation.current_index,
            current_message=conversation.current_message,
            next_message=conversation.next_message,
            progress=ProgressSnapshot(
                completion_percentage=progress.completion_percentage,
                elapsed=progress.elapsed,
                remaining=progress.remaining,
            ),
            playback_speed=playback_speed,
            typing_states=typing_states or _no_typing(),
            error=conversation.last_error,
        )
