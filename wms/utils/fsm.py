"""Allowed status transitions for lifecycle records.

    ADJUSTMENT_FSM = TransitionValidator({
        "PENDING": {"APPROVED", "REJECTED"},
        "APPROVED": set(),
        "REJECTED": set(),
    })
    ADJUSTMENT_FSM.can_transition(bill["status"], "APPROVED")
"""


class TransitionValidator:
    def __init__(self, graph: dict[str, set[str]]):
        self.graph = graph

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())


__all__ = ["TransitionValidator"]
