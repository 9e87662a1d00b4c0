"""Turns authored message timings into the waits actually used during playback."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import timedelta

import attrs

from ..errors import InvalidSpeed
from ..models.message import Message
from .config import TimingConfig


@attrs.frozen
class MessageTimingPlan:
    delay_before_typing: timedelta
    typing_duration: timedelta

    @property
    def total_duration(self) -> timedelta:
        return self.delay_before_typing + self.typing_duration


def _check_speed(playback_speed: float) -> None:
    if not math.isfinite(playback_speed) or playback_speed <= 0:
        raise InvalidSpeed(playback_speed, "a positive finite number")


def _scaled_delay(message: Message, playback_speed: float, config: TimingConfig) -> timedelta:
    delay = message.timing.delay_before_typing / playback_speed
    if config.fast_mode:
        delay = min(delay, config.max_delay_before_typing)
    return delay


def calculate_message_timing(message: Message, playback_speed: float, config: TimingConfig) -> MessageTimingPlan:
    """Authored delay and typing duration divided by the speed, capped in fast mode.

    Raises:
        InvalidSpeed: if the speed is not a positive finite number.
    """
    _check_speed(playback_speed)
    typing = message.timing.typing_duration / playback_speed
    if config.fast_mode:
        typing = min(typing, config.max_typing_duration)
    return MessageTimingPlan(_scaled_delay(message, playback_speed, config), typing)


def calculate_optimized_timing(message: Message, playback_speed: float, config: TimingConfig) -> MessageTimingPlan:
    """Like calculate_message_timing, but the typing time follows the length of the text.

    Falls back to calculate_message_timing when optimized timing is off in the config.
    """
    if not config.use_optimized_timing:
        return calculate_message_timing(message, playback_speed, config)

    _check_speed(playback_speed)
    by_length = timedelta(seconds=len(message.display_text) / config.characters_per_second)
    typing = max(config.min_typing_duration, by_length) / playback_speed
    if config.fast_mode:
        typing = min(typing, config.max_typing_duration)
    return MessageTimingPlan(_scaled_delay(message, playback_speed, config), typing)


def calculate_timing(message: Message, playback_speed: float, config: TimingConfig) -> MessageTimingPlan:
    if config.use_optimized_timing:
        return calculate_optimized_timing(message, playback_speed, config)
    return calculate_message_timing(message, playback_speed, config)


def estimate_playback_duration(messages: Sequence[Message], playback_speed: float, config: TimingConfig) -> timedelta:
    """Total time needed to play all messages, ignoring scheduling overhead."""
    return sum((calculate_timing(msg, playback_speed, config).total_duration for msg in messages), timedelta(0))


def estimate_time_to_message(messages: Sequence[Message], index: int, playback_speed: float,
                             config: TimingConfig) -> timedelta:
    """Time from the start of playback until the message at `index` is sent."""
    return estimate_playback_duration(messages[:index + 1], playback_speed, config)
