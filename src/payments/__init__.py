"""
Payments Module

Turns payment outcomes into booking status changes:

- reconciler.py: Slip verification, provider captures, cancel and complete transitions
- router.py: FastAPI endpoints for reconciliation and completion
- schemas.py: Payment event and response models

A booking and its payment artifact always change together. Terminal bookings
(cancelled, completed) accept no further payment events.
"""

from .router import router
from .reconciler import PaymentReconciler, ReconciliationResult
from .schemas import PaymentEvent, PaymentOutcome, SlipStatus, CaptureStatus, ReconciliationResponse

__all__ = [
    "router",
    "PaymentReconciler",
    "ReconciliationResult",
    "PaymentEvent",
    "PaymentOutcome",
    "SlipStatus",
    "CaptureStatus",
    "ReconciliationResponse"
]
