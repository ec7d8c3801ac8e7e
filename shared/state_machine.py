from enum import Enum
from typing import Optional
from dataclasses import dataclass

from .errors import RegistrationError


class PaymentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TransitionError(RegistrationError):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


@dataclass
class Transition:
    from_state: PaymentStatus
    to_state: PaymentStatus
    action: str


class PaymentStateMachine:
    """
    Payment review lifecycle of a single registration.

    Every registration starts ``pending``. An administrator moves it to
    ``verified`` or ``rejected`` exactly once; both are terminal. Repeating
    the action that produced the terminal state is accepted as a no-op.
    """

    TRANSITIONS = [
        Transition(PaymentStatus.PENDING, PaymentStatus.VERIFIED, "verify"),
        Transition(PaymentStatus.PENDING, PaymentStatus.REJECTED, "reject"),
        Transition(PaymentStatus.VERIFIED, PaymentStatus.VERIFIED, "verify"),
        Transition(PaymentStatus.REJECTED, PaymentStatus.REJECTED, "reject"),
    ]

    def __init__(self, initial_state: PaymentStatus = PaymentStatus.PENDING):
        self._state = initial_state

    @property
    def state(self) -> PaymentStatus:
        return self._state

    def find_transition(self, action: str) -> Optional[Transition]:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                return t
        return None

    def transition(self, action: str) -> PaymentStatus:
        t = self.find_transition(action)
        if t is None:
            raise TransitionError(
                self._state.value,
                "unknown",
                f"No valid transition for action '{action}' from state '{self._state.value}'"
            )

        self._state = t.to_state
        return self._state

    @classmethod
    def from_state_string(cls, state_str: Optional[str]) -> "PaymentStateMachine":
        # Rows written before the status column existed carry NULL.
        try:
            state = PaymentStatus(state_str)
        except ValueError:
            state = PaymentStatus.PENDING
        return cls(initial_state=state)
