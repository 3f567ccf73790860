import pytest

from telegram_playground_bots.core.collector import CollectionSession, Language, LineCollector, SessionActiveError

PYTHON = Language(name="python", version="3.10.0", label="Python")


def test_collector_begin_append_drain() -> None:
    collector = LineCollector()

    session = collector.begin_session(chat_id=42, language=PYTHON)
    assert collector.get(42) is session
    assert collector.append_line(chat_id=42, text="print(1)")
    assert collector.append_line(chat_id=42, text="print(2)")

    assert session.buffer == ["print(1)\n", "print(2)\n"]
    assert collector.drain_and_close(42) == "print(1)\nprint(2)"
    assert collector.get(42) is None
    assert len(collector) == 0


def test_empty_line_is_ignored() -> None:
    collector = LineCollector()
    session = collector.begin_session(chat_id=1, language=PYTHON)
    collector.append_line(chat_id=1, text="x = 1")

    assert collector.append_line(chat_id=1, text="") is False
    assert session.buffer == ["x = 1\n"]


def test_append_without_session_is_noop() -> None:
    collector = LineCollector()

    assert collector.append_line(chat_id=5, text="print(1)") is False
    assert collector.get(5) is None


def test_lines_stay_in_their_chat() -> None:
    collector = LineCollector()
    collector.begin_session(chat_id=1, language=PYTHON)
    collector.begin_session(chat_id=2, language=PYTHON)

    collector.append_line(chat_id=1, text="a")
    collector.append_line(chat_id=2, text="b")
    collector.append_line(chat_id=1, text="c")

    assert collector.drain_and_close(1) == "a\nc"
    assert collector.drain_and_close(2) == "b"


def test_drain_without_lines_returns_empty_source() -> None:
    collector = LineCollector()
    collector.begin_session(chat_id=7, language=PYTHON)

    assert collector.drain_and_close(7) == ""


def test_second_drain_does_not_replay_output() -> None:
    collector = LineCollector()
    collector.begin_session(chat_id=3, language=PYTHON)
    collector.append_line(chat_id=3, text="print('once')")

    assert collector.drain_and_close(3) == "print('once')"
    assert collector.drain_and_close(3) is None


def test_drain_strips_surrounding_whitespace_only() -> None:
    collector = LineCollector()
    collector.begin_session(chat_id=4, language=PYTHON)
    collector.append_line(chat_id=4, text="  ")
    collector.append_line(chat_id=4, text="def f():")
    collector.append_line(chat_id=4, text="    return 1")

    assert collector.drain_and_close(4) == "def f():\n    return 1"


def test_begin_session_rejects_active_chat() -> None:
    collector = LineCollector()
    first = collector.begin_session(chat_id=9, language=PYTHON)

    with pytest.raises(SessionActiveError):
        collector.begin_session(chat_id=9, language=Language(name="rust", version="1.68.2", label="Rust"))
    assert collector.get(9) is first


def test_collector_uses_injected_store() -> None:
    store: dict[int, CollectionSession] = {}
    collector = LineCollector(store)

    collector.begin_session(chat_id=11, language=PYTHON)
    collector.append_line(chat_id=11, text="pass")

    assert store[11].source == "pass"
    assert collector.is_active(11)
    collector.drain_and_close(11)
    assert store == {}
