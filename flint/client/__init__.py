"""Client side of the payment and trade submission workflow."""

from flint.client.cache import CacheInvalidation, QueryCache
from flint.client.errors import AmountValidationError, ApiError, FlintClientError, MfaRequired, TransportError
from flint.client.http import FlintApiClient
from flint.client.payment_workflow import PaymentWorkflow
from flint.client.polling import PollOutcome, Poller, poll
from flint.client.trade_workflow import TradeWorkflow
from flint.client.validation import TradeTicket, resolve_payment_amount, validate_trade
from flint.client.workflow import DialogWorkflow

__all__ = [
    "AmountValidationError",
    "ApiError",
    "CacheInvalidation",
    "DialogWorkflow",
    "FlintApiClient",
    "FlintClientError",
    "MfaRequired",
    "PaymentWorkflow",
    "PollOutcome",
    "Poller",
    "QueryCache",
    "TradeTicket",
    "TradeWorkflow",
    "TransportError",
    "poll",
    "resolve_payment_amount",
    "validate_trade",
]
