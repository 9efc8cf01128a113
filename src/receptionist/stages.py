from enum import Enum

STAGE_ORDER = ("greeting", "ordering", "confirming", "complete")
TERMINAL_STAGES = {"complete"}


class Stage(Enum):
    GREETING = "greeting"
    ORDERING = "ordering"
    CONFIRMING = "confirming"
    COMPLETE = "complete"

    @property
    def rank(self) -> int:
        return STAGE_ORDER.index(self.value)

    @property
    def is_terminal(self) -> bool:
        return self.value in TERMINAL_STAGES

    def precedes(self, other: "Stage") -> bool:
        return self.rank < other.rank
