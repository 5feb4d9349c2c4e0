from support_bridge.models import CardReference, SessionState
from support_bridge.routing.registry import IdentifierRegistry


def test_bind_connection_sets_both_directions():
    registry = IdentifierRegistry()
    registry.bind_connection("s1", "c1")

    assert registry.lookup_connection_by_session("s1") == "c1"
    assert registry.lookup_session_by_connection("c1") == "s1"


def test_latest_connection_wins_and_stale_disconnect_keeps_it():
    registry = IdentifierRegistry()
    registry.bind_connection("s1", "c1")
    registry.bind_connection("s1", "c2")

    assert registry.lookup_connection_by_session("s1") == "c2"
    # The old connection's reverse entry dangles until it disconnects.
    assert registry.lookup_session_by_connection("c1") == "s1"

    assert registry.unbind_connection("c1") == "s1"
    assert registry.lookup_session_by_connection("c1") is None
    assert registry.lookup_connection_by_session("s1") == "c2"


def test_rebinding_a_connection_to_another_session_releases_the_first():
    registry = IdentifierRegistry()
    registry.bind_connection("s1", "c1")
    registry.bind_connection("s2", "c1")

    assert registry.lookup_connection_by_session("s1") is None
    assert registry.lookup_connection_by_session("s2") == "c1"
    assert registry.lookup_session_by_connection("c1") == "s2"


def test_unbind_unknown_connection_is_a_no_op():
    registry = IdentifierRegistry()
    assert registry.unbind_connection("nope") is None


def test_bind_thread_is_set_once():
    registry = IdentifierRegistry()

    assert registry.bind_thread("s1", 10) == 10
    assert registry.bind_thread("s1", 11) == 10
    assert registry.lookup_thread_by_session("s1") == 10
    assert registry.lookup_session_by_thread(10) == "s1"
    assert registry.lookup_session_by_thread(11) is None


def test_forget_session_keeps_thread_and_card():
    registry = IdentifierRegistry()
    card = CardReference(chat_id=-100, message_id=7)
    registry.bind_connection("s1", "c1")
    registry.bind_thread("s1", 10)
    registry.set_card_reference("s1", card)

    registry.forget_session("s1")

    assert registry.lookup_connection_by_session("s1") is None
    assert registry.lookup_thread_by_session("s1") == 10
    assert registry.lookup_session_by_thread(10) == "s1"
    assert registry.get_card_reference("s1") == card


def test_state_transitions():
    registry = IdentifierRegistry()
    assert registry.state("s1") is SessionState.UNINITIALIZED

    registry.bind_connection("s1", "c1")
    assert registry.state("s1") is SessionState.ACTIVE

    registry.bind_thread("s1", 10)
    assert registry.state("s1") is SessionState.THREADED

    assert registry.mark_closed("s1") is True
    assert registry.mark_closed("s1") is False
    assert registry.state("s1") is SessionState.CLOSED


def test_snapshot():
    registry = IdentifierRegistry()
    assert registry.snapshot("s1") is None

    registry.bind_connection("s1", "c1")
    registry.bind_thread("s1", 10)
    snapshot = registry.snapshot("s1")

    assert snapshot is not None
    assert snapshot.state is SessionState.THREADED
    assert snapshot.thread_id == 10
    assert snapshot.connection_id == "c1"
    assert snapshot.card is None
    assert snapshot.created_at is not None
    assert snapshot.closed_at is None
