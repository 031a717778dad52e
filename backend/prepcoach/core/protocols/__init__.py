"""Core protocols for dependency injection.

Cross-cutting infrastructure seams. Domain-specific protocols live in their
own domain package.
"""

from prepcoach.core.protocols.inference import InferenceClient
from prepcoach.core.protocols.payment import (
    CheckoutSessionResult,
    PaymentGatewayProtocol,
)

__all__ = [
    "CheckoutSessionResult",
    "InferenceClient",
    "PaymentGatewayProtocol",
]
