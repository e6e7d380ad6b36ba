"""Quick-add task line parsing for Rollover.

    'Buy milk #shopping #Home !high' -> title 'Buy milk',
                                        tags ['shopping', 'home'],
                                        priority 'high'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

TAG_RE = re.compile(r"#([\w-]+)")
PRIORITY_RE = re.compile(r"!(low|med|high|l|m|h)\b", re.IGNORECASE)

_PRIORITY_ALIASES = {"l": "low", "m": "med", "h": "high"}


@dataclass
class ParsedLine:
    title: str = ""
    tags: list[str] = field(default_factory=list)
    priority: str = "med"


def _squash(s: str) -> str:
    return re.sub(r"\s{2,}", " ", s).strip()


def parse_task_line(line: str) -> ParsedLine:
    """Split a quick-add line into title, tags and priority.

    Recognizes:
        #tag           -> lower-cased tag, removed from the title
        !low !med !high (or !l !m !h) -> priority (first one wins)
    """
    tags = [m.group(1).lower() for m in TAG_RE.finditer(line)]
    title = TAG_RE.sub("", line)

    priority = "med"
    m = PRIORITY_RE.search(title)
    if m:
        p = m.group(1).lower()
        priority = _PRIORITY_ALIASES.get(p, p)
        title = title[: m.start()] + title[m.end():]

    return ParsedLine(title=_squash(title), tags=tags, priority=priority)


OPEN_RE = re.compile(r"!open\b", re.IGNORECASE)


@dataclass
class TaskFilter:
    query: str = ""
    priority: str | None = None
    only_open: bool = False
    tag: str | None = None


def parse_filter_line(line: str) -> TaskFilter:
    """Filter box syntax: free text, one #tag, one !priority, !open.

        'milk #dairy !h !open' -> query 'milk', tag 'dairy',
                                  priority 'high', only open tasks
    """
    only_open = bool(OPEN_RE.search(line))
    text = OPEN_RE.sub("", line)
    tags = [m.group(1).lower() for m in TAG_RE.finditer(text)]
    text = TAG_RE.sub("", text)

    priority = None
    m = PRIORITY_RE.search(text)
    if m:
        p = m.group(1).lower()
        priority = _PRIORITY_ALIASES.get(p, p)
        text = text[: m.start()] + text[m.end():]

    return TaskFilter(query=_squash(text), priority=priority, only_open=only_open, tag=tags[0] if tags else None)
