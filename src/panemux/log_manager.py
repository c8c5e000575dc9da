from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, List

CATEGORIES = ("events", "errors", "debug", "keys")


@dataclass
class LogManager:
    """Line-buffered in-memory log, split by category.

    Categories: events, errors, debug, keys. Panes own the real terminal,
    so nothing is printed while the surface is up; the buffers are dumped
    by the diagnostics export instead.
    """

    max_lines: int = 2000
    buffers: Dict[str, Deque[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in CATEGORIES:
            self.buffers[name] = deque(maxlen=self.max_lines)

    def add(self, category: str, message: str) -> None:
        buf = self.buffers.setdefault(category, deque(maxlen=self.max_lines))
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        for line in message.splitlines() or [message]:
            buf.append(f"{stamp} {line}")

    def event(self, message: str) -> None:
        self.add("events", message)

    def error(self, message: str) -> None:
        self.add("errors", message)

    def debug(self, message: str) -> None:
        self.add("debug", message)

    def lines(self, category: str) -> List[str]:
        return list(self.buffers.get(category, ()))

    def text(self, category: str) -> str:
        buf = self.buffers.get(category)
        if not buf:
            return ""
        return "\n".join(buf)
