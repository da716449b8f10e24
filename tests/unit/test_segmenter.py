# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from orchestrator.segmenter import PendingTextBuffer, contains_sentence_end, is_speakable


# ---------------------------------------------------------------------
# is_speakable
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "text",
    [
        "Flight 1214 is on time.",
        "Is it delayed?",
        "Boarding now!",
        "Done.   ",
        "Done.\n",
    ],
)
def test_sentence_end_is_speakable(text: str) -> None:
    assert is_speakable(text) is True


def test_short_clause_is_not_speakable() -> None:
    assert is_speakable("Flight 1214 is,") is False


def test_long_clause_is_speakable() -> None:
    text = "Flight 1214 departs from gate C6 which is currently in use,"
    assert len(text.strip()) > 50
    assert is_speakable(text) is True


def test_clause_threshold_is_strict() -> None:
    exactly_fifty = "x" * 49 + ";"
    assert len(exactly_fifty) == 50
    assert is_speakable(exactly_fifty) is False
    assert is_speakable("x" + exactly_fifty) is True


@pytest.mark.parametrize("text", ["", "   ", "Flight 1214 departs from gate", "No punctuation here at all and it keeps going on and on"])
def test_unfinished_text_is_not_speakable(text: str) -> None:
    assert is_speakable(text) is False


def test_contains_sentence_end_anywhere() -> None:
    assert contains_sentence_end("On time. Gate C6") is True
    assert contains_sentence_end("on time, gate C6") is False


# ---------------------------------------------------------------------
# PendingTextBuffer
# ---------------------------------------------------------------------

def test_buffer_accumulates_until_speakable() -> None:
    buf = PendingTextBuffer()
    buf.append("Flight 12")
    assert buf.is_speakable() is False

    buf.append("14 is on time. ")
    assert buf.is_speakable() is True
    assert buf.flush() == "Flight 1214 is on time."

    # cleared after flush
    assert buf.text == ""
    assert not buf


def test_flush_of_whitespace_returns_none_and_clears() -> None:
    buf = PendingTextBuffer()
    buf.append("   ")
    assert buf.flush() is None
    assert buf.text == ""


def test_clear_drops_text() -> None:
    buf = PendingTextBuffer()
    buf.append("half a sentence")
    buf.clear()
    assert buf.flush() is None
