"""Counters for a tail session, logged as a summary on shutdown."""

from dataclasses import dataclass


@dataclass
class TailStats:
    polls: int = 0
    empty_polls: int = 0
    events_emitted: int = 0
    windows_exceeded: int = 0
    reactor_failures: int = 0

    def record_poll(self, count: int):
        self.polls += 1
        if count == 0:
            self.empty_polls += 1

    def record_emitted(self, count: int = 1):
        self.events_emitted += count

    def record_window_exceeded(self):
        self.windows_exceeded += 1

    def record_reactor_failure(self):
        self.reactor_failures += 1

    def summary(self) -> str:
        return (
            f"polls={self.polls} empty={self.empty_polls} "
            f"events={self.events_emitted} "
            f"windows_exceeded={self.windows_exceeded} "
            f"reactor_failures={self.reactor_failures}"
        )
