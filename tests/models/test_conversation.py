"""Tests for the conversation model and its lifecycle."""

from datetime import timedelta

import pytest

from conversation_playback.errors import DuplicateMessageId, InvalidIndex, InvalidSpeed, InvalidTransition
from conversation_playback.models import ConversationSettings, ConversationStatus, MessageStatus, SenderType


class TestConstruction:

    def test_duplicate_ids_rejected(self, make_message, make_conversation) -> None:
        with pytest.raises(DuplicateMessageId, match="m1"):
            make_conversation(make_message("m1"), make_message("m1"))

    def test_add_duplicate_rejected(self, sample_conversation, make_message) -> None:
        with pytest.raises(DuplicateMessageId):
            sample_conversation.add_message(make_message("msg_2"))

    def test_invalid_speed_rejected(self) -> None:
        with pytest.raises(InvalidSpeed):
            ConversationSettings(playback_speed=0)
        with pytest.raises(InvalidSpeed):
            ConversationSettings(playback_speed=5.5)
        assert ConversationSettings(playback_speed=5).playback_speed == 5

    def test_estimated_duration(self, sample_conversation) -> None:
        assert sample_conversation.estimated_duration == timedelta(seconds=0.45)


class TestLifecycle:

    def test_play_pause_resume(self, sample_conversation) -> None:
        start = sample_conversation.messages[0].created_at
        playing = sample_conversation.play(start)
        assert playing.status == ConversationStatus.PLAYING
        assert playing.start_time == start

        paused = playing.pause(start + timedelta(seconds=2))
        assert paused.is_paused
        assert paused.elapsed() == timedelta(seconds=2)

        resumed = paused.play(start + timedelta(seconds=5))
        assert resumed.is_playing
        assert resumed.total_paused_time == timedelta(seconds=3)
        assert resumed.elapsed(start + timedelta(seconds=6)) == timedelta(seconds=3)

    def test_pause_only_from_playing(self, sample_conversation) -> None:
        assert sample_conversation.pause() is sample_conversation

    def test_play_when_playing_is_unchanged(self, sample_conversation) -> None:
        playing = sample_conversation.play()
        assert playing.play() is playing

    def test_advance_to_completion(self, sample_conversation) -> None:
        conversation = sample_conversation.play()
        conversation = conversation.advance_to_next().advance_to_next()
        assert conversation.current_index == 2
        assert conversation.next_message is None

        completed = conversation.advance_to_next()
        assert completed.is_completed
        assert completed.current_index == 2
        assert completed.progress().completion_percentage == 100.0

    def test_play_completed_restarts(self, sample_conversation) -> None:
        completed = sample_conversation.play().jump_to(2).advance_to_next()
        restarted = completed.play()
        assert restarted.is_playing
        assert restarted.current_index == 0

    def test_reset_rewinds_messages(self, sample_conversation) -> None:
        conversation = sample_conversation.play().update_message_status("msg_1", MessageStatus.SENT)
        conversation = conversation.advance_to_next().pause()
        reset = conversation.reset()
        assert reset.status == ConversationStatus.IDLE
        assert reset.current_index == 0
        assert reset.pause_time is None
        assert reset.total_paused_time == timedelta(0)
        assert all(msg.status == MessageStatus.SENDING for msg in reset.messages)

    def test_jump_to_bounds(self, sample_conversation) -> None:
        assert sample_conversation.jump_to(2).current_index == 2
        for index in (-1, 3):
            with pytest.raises(InvalidIndex):
                sample_conversation.jump_to(index)

    def test_go_to_previous(self, sample_conversation) -> None:
        assert sample_conversation.go_to_previous() is sample_conversation
        moved = sample_conversation.jump_to(1)
        assert moved.go_to_previous().current_index == 0
        assert moved.previous_message == sample_conversation.messages[0]
        assert moved.can_go_back and moved.can_go_forward

    def test_set_error_from_any_state(self, sample_conversation) -> None:
        failed = sample_conversation.play().set_error(RuntimeError("boom"))
        assert failed.has_error
        assert failed.last_error == "boom"
        assert failed.play() is failed

    def test_update_message_status_checks_graph(self, sample_conversation) -> None:
        with pytest.raises(InvalidTransition):
            sample_conversation.update_message_status("msg_1", MessageStatus.READ)
        with pytest.raises(KeyError):
            sample_conversation.update_message_status("missing", MessageStatus.SENT)


class TestMessages:

    def test_remove_last_current_message_clamps_cursor(self, sample_conversation) -> None:
        at_last = sample_conversation.jump_to(2)
        removed = at_last.remove_message("msg_3")
        assert len(removed) == 2
        assert removed.current_index == 1
        assert removed.estimated_duration == timedelta(seconds=0.3)

    def test_remove_all_messages(self, make_message, make_conversation) -> None:
        conversation = make_conversation(make_message("only"))
        empty = conversation.remove_message("only")
        assert empty.is_empty
        assert empty.current_index == 0
        assert empty.current_message is None
        assert empty.progress().completion_percentage == 0.0

    def test_remove_unknown_is_noop(self, sample_conversation) -> None:
        assert sample_conversation.remove_message("missing") is sample_conversation

    def test_queries(self, sample_conversation) -> None:
        assert [m.id for m in sample_conversation.messages_by_sender(SenderType.USER)] == ["msg_1", "msg_3"]
        assert [m.id for m in sample_conversation.messages_up_to(1)] == ["msg_1", "msg_2"]
        assert sample_conversation.current_message == sample_conversation.messages[0]
        assert sample_conversation.next_message == sample_conversation.messages[1]

    def test_progress_remaining_scales_with_speed(self, sample_conversation) -> None:
        at_second = sample_conversation.jump_to(1)
        progress = at_second.progress()
        assert progress.current_index == 1
        assert progress.total_messages == 3
        assert progress.completion_percentage == pytest.approx(100 / 3)
        assert progress.remaining == timedelta(seconds=0.3)

        faster = at_second.update_settings(playback_speed=2.0)
        assert faster.progress().remaining == timedelta(seconds=0.15)

    def test_out_of_order_queue_logs_warning(self, make_message, make_conversation, caplog) -> None:
        with caplog.at_level("WARNING"):
            make_conversation(make_message("m1", index=3), make_message("m2", index=1))
        assert "queued before" in caplog.text
