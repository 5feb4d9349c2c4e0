from support_bridge.models import AgentCallback, AgentCommand, AgentMessage, CardReference
from support_bridge.workspace.updates import parse_update


GROUP_ID = -1001234567890


def _message(**overrides):
    message = {
        "message_id": 77,
        "chat": {"id": GROUP_ID, "type": "supergroup", "title": "Support"},
        "from": {"id": 7, "is_bot": False, "first_name": "Alice", "username": "alice"},
        "date": 1700000000,
        "text": "hello",
    }
    message.update(overrides)
    return {"update_id": 1, "message": message}


def test_plain_message():
    event = parse_update(_message(message_thread_id=1000, is_topic_message=True))

    assert type(event) is AgentMessage
    assert event.chat_id == GROUP_ID
    assert event.is_group is True
    assert event.thread_id == 1000
    assert event.text == "hello"
    assert event.actor.display == "@alice"
    assert event.from_bot is False
    assert event.reply_to_text is None


def test_reply_quote_and_caption():
    event = parse_update(
        _message(
            text=None,
            caption="see screenshot",
            reply_to_message={"message_id": 5, "text": "👤 Visitor [#abc123] (abc123):\nhi"},
        )
    )

    assert event.text == "see screenshot"
    assert event.reply_to_text.startswith("👤 Visitor [#abc123]")


def test_command_with_bot_suffix():
    event = parse_update(_message(text="/Close@SupportBot now please"))

    assert isinstance(event, AgentCommand)
    assert event.name == "close"
    assert event.args == "now please"
    assert event.text == "/Close@SupportBot now please"


def test_bot_author_is_flagged():
    event = parse_update(_message(**{"from": {"id": 9, "is_bot": True, "first_name": "Bridge"}}))

    assert event.from_bot is True
    assert event.actor.display == "@9"


def test_callback_query_carries_card():
    event = parse_update(
        {
            "update_id": 2,
            "callback_query": {
                "id": "cb-1",
                "from": {"id": 7, "is_bot": False, "first_name": "Alice"},
                "data": "close:abc123",
                "message": {
                    "message_id": 12,
                    "chat": {"id": GROUP_ID, "type": "supergroup"},
                    "text": "🆘 New support request",
                },
            },
        }
    )

    assert isinstance(event, AgentCallback)
    assert event.callback_id == "cb-1"
    assert event.data == "close:abc123"
    assert event.card == CardReference(chat_id=GROUP_ID, message_id=12)


def test_unroutable_and_malformed_updates():
    assert parse_update({"update_id": 3, "edited_message": {"message_id": 1}}) is None
    assert parse_update({"update_id": 4, "message": {"text": "no chat"}}) is None
    assert parse_update({"nothing": True}) is None
