"""Base payment verifier interface.

Verifiers only talk to whoever confirms an on-site payment.
Flow decisions (dismissing the gate, re-fetching the gated record) do NOT live here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class VerifierType(str, Enum):
    """Supported ways of confirming an on-site payment."""

    PROPERTY_API = "property_api"


@dataclass
class PaymentResult:
    """Result of a payment verification."""

    success: bool
    reference: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentVerifier(ABC):
    """Abstract base class for payment-at-property verifiers."""

    @property
    @abstractmethod
    def verifier_type(self) -> VerifierType:
        """Return the verifier type."""
        pass

    @abstractmethod
    async def verify_payment(
        self,
        reference: str,
        context: str | None = None,
    ) -> PaymentResult:
        """Verify an on-site payment by its transaction reference.

        Args:
            reference: Transaction reference entered by the host or guide
            context: Identifier of the gated record (booking or unlock id)

        Returns:
            PaymentResult with the verification outcome
        """
        pass
