# stock_hub/context.py
"""
Per-request call context for the business tier.

Built once per incoming request and passed explicitly down to every facade
and client call: request id for log correlation and ``X-Request-ID``, and a
monotonic deadline bounding the time spent on the data tier.
"""
from __future__ import annotations
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CallContext:
    request_id: str = field(default_factory=new_request_id)
    deadline: Optional[float] = None  # time.monotonic() value

    @classmethod
    def start(cls, request_id: Optional[str] = None, budget_seconds: Optional[float] = None) -> "CallContext":
        deadline = time.monotonic() + budget_seconds if budget_seconds is not None else None
        return cls(request_id=request_id or new_request_id(), deadline=deadline)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def timeout_for(self, default: float) -> float:
        """The per-call timeout: ``default`` capped by what is left of the deadline."""
        remaining = self.remaining()
        return default if remaining is None else min(default, remaining)
