"""Count messages per channel."""

from __future__ import annotations

from collections import Counter

from piecework_core.pieces import Monitor


class Activity(Monitor):
    """Keeps a running message count for every channel it sees."""

    def __init__(self, host, directory, file) -> None:
        super().__init__(host, directory, file, "activity", {"ignore_bots": True})
        self.counts: Counter[str] = Counter()

    def run(self, message) -> None:
        self.counts[message.channel or "direct"] += 1
