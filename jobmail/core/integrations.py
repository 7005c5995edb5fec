"""
Providers for external service clients.

Each client is built once per process and handed to routes through
Depends(), so tests can swap them with app.dependency_overrides.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import HTTPException, status

from jobmail.core import config
from jobmail.services.payment_gateway import PaymentGateway, RazorpayGateway
from jobmail.services.record_mirror import AirtableMirror, RecordMirror

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _build_payment_gateway() -> Optional[PaymentGateway]:
    if not config.RAZORPAY_KEY_ID or not config.RAZORPAY_KEY_SECRET:
        logger.warning("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not configured - payments disabled")
        return None
    return RazorpayGateway(
        key_id=config.RAZORPAY_KEY_ID,
        key_secret=config.RAZORPAY_KEY_SECRET,
        api_base=config.RAZORPAY_API_BASE,
        timeout=config.GATEWAY_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def _build_record_mirror() -> Optional[RecordMirror]:
    if not config.AIRTABLE_API_KEY or not config.AIRTABLE_BASE_ID:
        logger.warning("AIRTABLE_API_KEY / AIRTABLE_BASE_ID not configured - record mirroring disabled")
        return None
    return AirtableMirror(
        api_key=config.AIRTABLE_API_KEY,
        base_id=config.AIRTABLE_BASE_ID,
        table_name=config.AIRTABLE_TABLE_NAME,
        api_base=config.AIRTABLE_API_BASE,
        timeout=config.MIRROR_TIMEOUT_SECONDS,
    )


def get_payment_gateway() -> PaymentGateway:
    """Payment gateway dependency. 503 when payments are not configured."""
    gateway = _build_payment_gateway()
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "payments_not_configured", "message": "Payment gateway is not configured"},
        )
    return gateway


def get_record_mirror() -> Optional[RecordMirror]:
    """Record mirror dependency. None disables mirroring."""
    return _build_record_mirror()
