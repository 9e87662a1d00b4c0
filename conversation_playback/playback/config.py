"""Configuration of the playback engine and its timing calculator."""

from __future__ import annotations

from datetime import timedelta

import attrs
from attrs import field

from ..errors import InvalidSpeed
from ..models.conversation import MAX_PLAYBACK_SPEED


@attrs.frozen
class TimingConfig:
    """How authored message timings are turned into real waits.

    In fast mode, delays are capped at `max_delay_before_typing` and typing at
    `max_typing_duration` after scaling by the playback speed. With
    `use_optimized_timing`, typing time is derived from the length of the message
    text at `characters_per_second`, but never less than `min_typing_duration`.
    """

    max_delay_before_typing: timedelta = timedelta(milliseconds=500)
    max_typing_duration: timedelta = timedelta(milliseconds=800)
    fast_mode: bool = False
    use_optimized_timing: bool = False
    characters_per_second: float = field(default=50.0, validator=attrs.validators.gt(0))
    min_typing_duration: timedelta = timedelta(milliseconds=500)


@attrs.frozen
class EngineConfig:
    timing: TimingConfig = field(factory=TimingConfig)
    progress_interval: timedelta = timedelta(seconds=1)
    fast_progress_interval: timedelta = timedelta(milliseconds=500)
    enable_debug: bool = False
    # Play again this long after completing; None disables auto restart.
    restart_delay: timedelta | None = None
    min_speed: float = 0.1
    max_speed: float = 5.0

    def __attrs_post_init__(self) -> None:
        if not 0 < self.min_speed <= self.max_speed <= MAX_PLAYBACK_SPEED:
            raise InvalidSpeed(self.max_speed if self.max_speed > MAX_PLAYBACK_SPEED else self.min_speed,
                               f'within (0, {MAX_PLAYBACK_SPEED}] with min_speed <= max_speed')

    @property
    def effective_progress_interval(self) -> timedelta:
        return self.fast_progress_interval if self.timing.fast_mode else self.progress_interval

    @staticmethod
    def fast(**changes: object) -> EngineConfig:
        """Config with fast mode timing on."""
        return EngineConfig(timing=TimingConfig(fast_mode=True), **changes)  # type: ignore[arg-type]
