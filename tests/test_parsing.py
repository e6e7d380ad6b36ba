"""Tests for rollover/parsing.py — quick-add line syntax."""

from rollover.parsing import parse_filter_line, parse_task_line


def test_plain_title():
    p = parse_task_line("  Water the plants  ")
    assert p.title == "Water the plants"
    assert p.tags == []
    assert p.priority == "med"


def test_tags_are_extracted_and_lowercased():
    p = parse_task_line("Buy milk #shopping #Home")
    assert p.title == "Buy milk"
    assert p.tags == ["shopping", "home"]


def test_tag_in_the_middle():
    p = parse_task_line("Call #work Alice back")
    assert p.title == "Call Alice back"
    assert p.tags == ["work"]


def test_tags_may_contain_dashes():
    assert parse_task_line("Pack #long-trip").tags == ["long-trip"]


def test_priority_words():
    assert parse_task_line("Taxes !high").priority == "high"
    assert parse_task_line("Taxes !low").priority == "low"
    assert parse_task_line("Taxes !MED").priority == "med"


def test_priority_short_forms():
    p = parse_task_line("Pay rent !h #bills")
    assert p.priority == "high"
    assert p.title == "Pay rent"
    assert p.tags == ["bills"]
    assert parse_task_line("Dust !l").priority == "low"


def test_priority_must_be_a_whole_word():
    p = parse_task_line("Fix !hello world")
    assert p.priority == "med"
    assert p.title == "Fix !hello world"


def test_only_markers_leaves_empty_title():
    p = parse_task_line("#tag !h")
    assert p.title == ""
    assert p.tags == ["tag"]
    assert p.priority == "high"


# ── Filter box ────────────────────────────────────────────────


def test_filter_line_empty():
    f = parse_filter_line("")
    assert (f.query, f.priority, f.only_open, f.tag) == ("", None, False, None)


def test_filter_line_all_parts():
    f = parse_filter_line("milk #Dairy !h !open")
    assert f.query == "milk"
    assert f.tag == "dairy"
    assert f.priority == "high"
    assert f.only_open is True


def test_filter_line_first_tag_wins():
    assert parse_filter_line("#home #work").tag == "home"


def test_filter_line_open_is_not_a_priority():
    f = parse_filter_line("!OPEN")
    assert f.only_open is True
    assert f.priority is None
    assert f.query == ""
