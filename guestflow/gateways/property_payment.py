"""Payment-at-property verifier backed by the marketplace API."""

import logging

from guestflow.api import endpoints
from guestflow.api.client import ApiClient, extract_error_message
from guestflow.core.exceptions import TransportError
from guestflow.gateways.base import PaymentResult, PaymentVerifier, VerifierType

logger = logging.getLogger(__name__)


class PropertyPaymentVerifier(PaymentVerifier):
    """Confirms a transaction reference through the collect endpoint."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    @property
    def verifier_type(self) -> VerifierType:
        return VerifierType.PROPERTY_API

    async def verify_payment(
        self,
        reference: str,
        context: str | None = None,
    ) -> PaymentResult:
        """Submit the reference; transport failures become unsuccessful results."""
        body = {"transactionReference": reference}
        if context:
            body["bookingId"] = context

        try:
            envelope = await self.client.post(endpoints.COLLECT_PAYMENT_AT_PROPERTY, body)
        except TransportError as e:
            return PaymentResult(success=False, reference=reference, error_message=e.detail)

        if not envelope.success:
            return PaymentResult(
                success=False,
                reference=reference,
                error_message=extract_error_message(envelope, "Payment could not be verified"),
                raw_response=envelope.model_dump(),
            )

        logger.info(f"Payment at property verified (reference={reference}, context={context})")
        return PaymentResult(
            success=True,
            reference=reference,
            raw_response=envelope.model_dump(),
        )
