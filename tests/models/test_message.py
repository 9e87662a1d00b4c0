"""Tests for the message model and its delivery-status graph."""

from datetime import timedelta
from itertools import product

import attrs
import pytest

from conversation_playback.errors import InvalidTransition
from conversation_playback.models import (
    FlowContent,
    InteractiveContent,
    InteractiveKind,
    MediaContent,
    MessageContent,
    MessageStatus,
    MessageType,
    SenderType,
    is_valid_status_transition,
    update_status,
)
from conversation_playback.models.message import filter_by_sender, group_by_sender

ALLOWED = {
    (MessageStatus.SENDING, MessageStatus.SENT),
    (MessageStatus.SENT, MessageStatus.DELIVERED),
    (MessageStatus.DELIVERED, MessageStatus.READ),
    (MessageStatus.SENDING, MessageStatus.FAILED),
    (MessageStatus.SENT, MessageStatus.FAILED),
    (MessageStatus.FAILED, MessageStatus.SENDING),
}


@pytest.mark.parametrize("from_status,to_status", list(product(MessageStatus, MessageStatus)))
def test_status_graph(make_message, from_status: MessageStatus, to_status: MessageStatus) -> None:
    message = attrs.evolve(make_message("m1"), status=from_status)
    assert is_valid_status_transition(from_status, to_status) == ((from_status, to_status) in ALLOWED)

    if (from_status, to_status) in ALLOWED:
        assert update_status(message, to_status).status == to_status
    else:
        with pytest.raises(InvalidTransition) as exc_info:
            update_status(message, to_status)
        assert exc_info.value.from_status == from_status
        assert exc_info.value.to_status == to_status


def test_update_status_is_pure_and_stamps_time(make_message) -> None:
    message = make_message("m1")
    at = message.created_at + timedelta(seconds=3)

    sent = update_status(message, MessageStatus.SENT, at=at)
    delivered = update_status(sent, MessageStatus.DELIVERED, at=at + timedelta(seconds=1))

    assert message.status == MessageStatus.SENDING
    assert message.timing.sent_at is None
    assert sent.timing.sent_at == at
    assert delivered.timing.delivered_at == at + timedelta(seconds=1)
    assert delivered.timing.sent_at == at


def test_update_status_without_time_keeps_stamps(make_message) -> None:
    sent = update_status(make_message("m1"), MessageStatus.SENT)
    assert sent.timing.sent_at is None


def test_rewound_clears_delivery(make_message) -> None:
    message = make_message("m1")
    read = update_status(update_status(update_status(message, MessageStatus.SENT, at=message.created_at),
                                       MessageStatus.DELIVERED), MessageStatus.READ)
    rewound = read.rewound()
    assert rewound.status == MessageStatus.SENDING
    assert rewound.timing.sent_at is None
    assert rewound == message


def test_message_requires_id(make_message) -> None:
    with pytest.raises(ValueError):
        make_message("  ")


def test_negative_timing_rejected(make_message) -> None:
    with pytest.raises(ValueError):
        make_message("m1", delay=-1)


def test_display_text(make_message) -> None:
    image = make_message("m1", type=MessageType.IMAGE, content=MessageContent(media=MediaContent(url="https://x/y.png")))
    captioned = make_message("m2", type=MessageType.VIDEO,
                             content=MessageContent(media=MediaContent(url="https://x/y.mp4", caption="Our terrace")))
    document = make_message("m3", type=MessageType.DOCUMENT,
                            content=MessageContent(media=MediaContent(url="https://x/menu.pdf", filename="menu.pdf")))

    assert make_message("m0", "Hello there").display_text == "Hello there"
    assert image.display_text == "📷 Image"
    assert captioned.display_text == "Our terrace"
    assert document.display_text == "📄 menu.pdf"
    assert image.media_url == "https://x/y.png"
    assert image.text == ""
    assert str(make_message("m4", "Hi", sender=SenderType.BUSINESS)) == "[BUSINESS] Hi"


def test_flow_trigger(make_message) -> None:
    launcher = make_message("m1", type=MessageType.INTERACTIVE, content=MessageContent(
        interactive=InteractiveContent(type=InteractiveKind.FLOW, body="Book a table")))
    buttons = make_message("m2", type=MessageType.INTERACTIVE, content=MessageContent(
        interactive=InteractiveContent(type=InteractiveKind.BUTTON, body="Yes or no?", action={"buttons": ["yes", "no"]})))
    flow = make_message("m3", type=MessageType.FLOW,
                        content=MessageContent(flow=FlowContent(flow_id="f1", flow_token="t1", flow_data={"guests": 2})))

    assert launcher.is_flow_trigger
    assert launcher.is_interactive
    assert not buttons.is_flow_trigger
    assert flow.is_flow_trigger
    assert flow.content.flow is not None and flow.content.flow.flow_data["guests"] == 2
    assert make_message("m4").total_animation_time == timedelta(seconds=0.15)


def test_group_by_sender(make_message) -> None:
    messages = (
        make_message("m1"),
        make_message("m2", sender=SenderType.BUSINESS),
        make_message("m3"),
    )
    groups = group_by_sender(messages)
    assert [m.id for m in groups[SenderType.USER]] == ["m1", "m3"]
    assert [m.id for m in groups[SenderType.BUSINESS]] == ["m2"]
    assert filter_by_sender(messages, SenderType.BUSINESS) == groups[SenderType.BUSINESS]
