"""
Outcome of one optimistic mutation.

    Applied(local) ──► Confirmed(remote)
                  ├──► Offline(local kept)
                  └──► RolledBack(error)

Rejected is returned when a local pre-check refuses the command before
anything is applied or sent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from wms.remote import RemoteError


class MutationOutcome(str, Enum):
    CONFIRMED = "confirmed"
    OFFLINE = "offline"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"
    NOOP = "noop"


@dataclass
class MutationResult:
    outcome: MutationOutcome
    data: Any = None
    message: str = ""
    error: Optional[RemoteError] = None
    missing: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome in (
            MutationOutcome.CONFIRMED,
            MutationOutcome.OFFLINE,
            MutationOutcome.NOOP,
        )

    @property
    def applied(self) -> bool:
        """True when the change is part of local state afterwards."""
        return self.outcome in (MutationOutcome.CONFIRMED, MutationOutcome.OFFLINE)

    @classmethod
    def rejected(cls, message: str) -> "MutationResult":
        return cls(MutationOutcome.REJECTED, message=message)

    @classmethod
    def not_found(cls, label: str) -> "MutationResult":
        return cls(MutationOutcome.REJECTED, message=f"{label} not found", missing=True)

    @classmethod
    def noop(cls, message: str = "", data: Any = None) -> "MutationResult":
        return cls(MutationOutcome.NOOP, data=data, message=message)
