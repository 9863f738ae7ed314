"""
Payment system abstraction interface.

This module defines the abstract base class for payment processors.
Implementations (hosted payment links, a full gateway API, etc.) should
inherit from PaymentProcessor.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

from core.models import PaymentStatus


class PaymentProcessor(ABC):
    """
    Abstract base class for payment processors.

    Enrollment rows are created as pending; the processor reports the
    outcome later through webhooks.
    """

    @abstractmethod
    async def create_payment(
        self,
        enrollment_id: int,
        amount: int,
        currency: str,
        description: str,
        payment_link: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a payment request.

        Returns:
            Dictionary with payment information:
            - payment_id: Unique payment identifier
            - payment_url: URL for user to complete payment
            - status: Payment status
        """

    @abstractmethod
    async def check_payment_status(self, payment_id: str) -> PaymentStatus:
        """Return the current status of a payment."""

    @abstractmethod
    async def process_webhook(self, webhook_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Parse a payment webhook notification.

        Returns:
            Dictionary with payment_id, enrollment_id, status and amount, or
            None if the payload is not a usable payment event
        """

    def verify_webhook_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """Check the signature the gateway sent with a webhook body."""
        return True
