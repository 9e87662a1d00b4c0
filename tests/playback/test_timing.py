"""Tests for the timing calculator."""

from datetime import timedelta

import pytest

from conversation_playback.errors import InvalidSpeed
from conversation_playback.playback.config import TimingConfig
from conversation_playback.playback.timing import (
    calculate_message_timing,
    calculate_optimized_timing,
    calculate_timing,
    estimate_playback_duration,
    estimate_time_to_message,
)


@pytest.fixture
def message(make_message):
    return make_message("m1", "x" * 100, delay=1.0, typing=2.0)


def test_fixed_timing_scales_with_speed(message) -> None:
    config = TimingConfig()
    normal = calculate_message_timing(message, 1.0, config)
    double = calculate_message_timing(message, 2.0, config)

    assert normal.delay_before_typing == timedelta(seconds=1)
    assert normal.typing_duration == timedelta(seconds=2)
    assert normal.total_duration == timedelta(seconds=3)
    assert double.delay_before_typing == normal.delay_before_typing / 2
    assert double.typing_duration == normal.typing_duration / 2


def test_fast_mode_caps(message) -> None:
    plan = calculate_message_timing(message, 1.0, TimingConfig(fast_mode=True))
    assert plan.delay_before_typing == timedelta(milliseconds=500)
    assert plan.typing_duration == timedelta(milliseconds=800)

    # Values already below the caps are unaffected
    fast = calculate_message_timing(message, 5.0, TimingConfig(fast_mode=True))
    assert fast.delay_before_typing == timedelta(milliseconds=200)
    assert fast.typing_duration == timedelta(milliseconds=400)


def test_optimized_timing_follows_length(message, make_message) -> None:
    config = TimingConfig(use_optimized_timing=True)
    plan = calculate_optimized_timing(message, 1.0, config)
    # 100 characters at 50 per second
    assert plan.typing_duration == timedelta(seconds=2)
    assert plan.delay_before_typing == timedelta(seconds=1)

    short = calculate_optimized_timing(make_message("m2", "Hi", delay=1.0, typing=2.0), 2.0, config)
    assert short.typing_duration == timedelta(milliseconds=250)


def test_optimized_timing_falls_back_to_fixed(message) -> None:
    config = TimingConfig()
    assert calculate_optimized_timing(message, 1.0, config) == calculate_message_timing(message, 1.0, config)
    assert calculate_timing(message, 1.0, config) == calculate_message_timing(message, 1.0, config)


def test_optimized_timing_fast_mode(message) -> None:
    plan = calculate_timing(message, 1.0, TimingConfig(use_optimized_timing=True, fast_mode=True))
    assert plan.typing_duration == timedelta(milliseconds=800)


@pytest.mark.parametrize("speed", [0, -1, float("inf"), float("nan")])
def test_invalid_speed(message, speed: float) -> None:
    with pytest.raises(InvalidSpeed):
        calculate_message_timing(message, speed, TimingConfig())


def test_estimates(sample_conversation) -> None:
    messages = sample_conversation.messages
    config = TimingConfig()
    assert estimate_playback_duration(messages, 1.0, config) == timedelta(seconds=0.45)
    assert estimate_playback_duration(messages, 3.0, config) == timedelta(seconds=0.15)
    assert estimate_time_to_message(messages, 1, 1.0, config) == timedelta(seconds=0.3)
