import pytest

from support_bridge.routing.markers import find_marker, format_marker, parse_leading_marker


def test_leading_marker_splits_id_and_text():
    marker = parse_leading_marker("#a1b2c3 hello there")

    assert marker is not None
    assert marker.session_id == "a1b2c3"
    assert marker.rest == "hello there"


def test_leading_marker_keeps_multiline_rest():
    marker = parse_leading_marker("#deadbeef01\nline one\nline two")

    assert marker is not None
    assert marker.session_id == "deadbeef01"
    assert marker.rest == "line one\nline two"


def test_leading_marker_keeps_trailing_whitespace():
    marker = parse_leading_marker("#a1b2c3   indented reply\n")

    assert marker is not None
    assert marker.rest == "indented reply\n"


def test_leading_marker_is_case_insensitive():
    marker = parse_leading_marker("#ABCDEF12 hi")

    assert marker is not None
    assert marker.session_id == "ABCDEF12"


@pytest.mark.parametrize(
    "text",
    [
        "",
        None,
        "hello #a1b2c3 there",
        "#a1b2c3",
        "#a1b2c3   ",
        "#a1b2c hi",
        "#zzzzzz hi",
        "a1b2c3 hi",
    ],
)
def test_leading_marker_rejects(text):
    assert parse_leading_marker(text) is None


def test_leading_marker_id_is_capped_at_32_hex_chars():
    long_id = "a" * 40
    assert parse_leading_marker(f"#{long_id} hi") is None


def test_find_marker_anywhere_in_text():
    assert find_marker("Session #deadbeef01") == "deadbeef01"
    assert find_marker("👤 Visitor [#abc123def] (abc123de):\nhi") == "abc123def"


def test_find_marker_returns_first_match():
    assert find_marker("#aaaaaa and #bbbbbb") == "aaaaaa"


def test_find_marker_without_marker():
    assert find_marker("no marker here #12") is None
    assert find_marker(None) is None


def test_format_marker_round_trips_through_find():
    assert find_marker(format_marker("0123456789abcdef")) == "0123456789abcdef"
