"""
Payment gateway interface and the Razorpay implementation.

The gateway creates orders and returns the authoritative order metadata;
it is constructed once and injected into the payment service.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from jobmail.core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class PaymentGateway(ABC):
    """Abstract base class for order-based payment gateways."""

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        notes: Dict[str, Any],
        receipt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a payment order.

        Args:
            amount: Amount in minor units (paise)
            currency: ISO currency code
            notes: Metadata stored on the order (account_id, plan, credits)
            receipt: Merchant receipt reference

        Returns:
            Order dict with at least 'id', 'amount', 'currency'
        """

    @abstractmethod
    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        """
        Fetch an order by ID.

        Returns:
            Order dict with 'amount', 'currency' and 'notes'

        Raises:
            PaymentGatewayError: If the gateway cannot be reached
        """

    @property
    @abstractmethod
    def signing_secret(self) -> str:
        """Secret used to sign payment confirmations."""


class RazorpayGateway(PaymentGateway):
    """Razorpay Orders API over REST."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def signing_secret(self) -> str:
        return self._key_secret

    def _request(self, method: str, path: str, json_payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.api_base}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method=method.upper(),
                url=url,
                auth=(self.key_id, self._key_secret),
                json=json_payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Razorpay network error on {path}: {e}")
            raise PaymentGatewayError("Unable to reach payment gateway. Please retry.") from e

        if response.status_code >= 400:
            logger.error(f"Razorpay rejected request: path={path}, status={response.status_code}")
            error = PaymentGatewayError("Payment gateway rejected the request.")
            error.retryable = response.status_code >= 500 or response.status_code == 429
            raise error

        try:
            payload = response.json()
        except ValueError as e:
            raise PaymentGatewayError("Invalid response received from payment gateway.") from e

        if not isinstance(payload, dict):
            raise PaymentGatewayError("Unexpected response format from payment gateway.")
        return payload

    def create_order(
        self,
        amount: int,
        currency: str,
        notes: Dict[str, Any],
        receipt: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "amount": amount,
            "currency": currency,
            "notes": {key: str(value) for key, value in notes.items()},
        }
        if receipt:
            payload["receipt"] = receipt

        order = self._request("POST", "/orders", payload)
        logger.info(f"Created Razorpay order: order_id={order.get('id')}, amount={amount}, currency={currency}")
        return order

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/orders/{order_id}")
