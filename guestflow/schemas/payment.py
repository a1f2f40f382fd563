"""Payment-at-property gate state."""

from dataclasses import dataclass


@dataclass
class PaymentGateState:
    """One activation of the payment gate.

    ``countdown_seconds`` only ever decreases, and once ``verified`` is set the
    activation is over: a later gate is a new ``PaymentGateState``.
    """

    payment_url: str
    countdown_seconds: int
    verified: bool = False
    reference: str | None = None
    redirected: bool = False
    context: str = ""

    def tick(self) -> int:
        if self.countdown_seconds > 0:
            self.countdown_seconds -= 1
        return self.countdown_seconds
