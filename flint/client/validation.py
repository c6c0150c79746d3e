"""
Local input validation.

Everything here runs before any request is made, so a rejected amount
never reaches the backend.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from pydantic import ValidationError

from flint.client.errors import AmountValidationError
from flint.models.enums import OrderType, PaymentAmountChoice, TimeInForce, TradeAction
from flint.schemas.common import CENT
from flint.schemas.payments import PreparationSnapshot
from flint.schemas.trades import TradePreviewRequest

DEFAULT_MINIMUM_PAYMENT = Decimal("25.00")
# CreatePaymentRequest.amount: 12 digits, 2 of them decimals
MAX_PAYMENT_AMOUNT = Decimal("9999999999.99")
MEMO_MAX_LENGTH = 200

Number = Union[str, int, float, Decimal]


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return "Please check the order details."
    field = ".".join(str(part) for part in details[0].get("loc", ()))
    message = details[0].get("msg", "invalid value")
    return f"{field}: {message}" if field else message


def parse_positive(raw: Optional[Number], message: str) -> Decimal:
    """Parse user input as a positive finite decimal or raise with `message`."""
    if raw is None:
        raise AmountValidationError(message)
    try:
        value = Decimal(str(raw).strip().replace(",", "").lstrip("$"))
    except InvalidOperation:
        raise AmountValidationError(message)
    if not value.is_finite() or value <= 0:
        raise AmountValidationError(message)
    return value


def parse_amount(raw: Optional[Number]) -> Decimal:
    value = parse_positive(raw, "Please enter a valid payment amount.")
    if value != value.quantize(CENT):
        raise AmountValidationError("Payment amounts can have at most two decimal places.")
    if value > MAX_PAYMENT_AMOUNT:
        raise AmountValidationError(f"Payment amount cannot exceed {_money(MAX_PAYMENT_AMOUNT)}.")
    return value


def validate_memo(memo: Optional[str]) -> str:
    memo = (memo or "").strip()
    if len(memo) > MEMO_MAX_LENGTH:
        raise AmountValidationError(f"Memo can be at most {MEMO_MAX_LENGTH} characters.")
    return memo


def resolve_payment_amount(
    choice: Union[PaymentAmountChoice, str],
    preparation: Optional[PreparationSnapshot],
    custom_amount: Optional[Number] = None,
    available_balance: Optional[Decimal] = None,
) -> Decimal:
    """
    Turn the amount choice into the amount to send.

    Minimum falls back to $25.00 when the card reports none. A custom
    amount may not exceed a positive statement balance.

    Raises:
        AmountValidationError: With the message to show the user.
    """
    choice = PaymentAmountChoice(choice)

    if choice == PaymentAmountChoice.MINIMUM:
        amount = preparation.minimum_due if preparation is not None else DEFAULT_MINIMUM_PAYMENT
        if amount <= 0:
            raise AmountValidationError("There is no minimum payment due on this card.")
    elif choice == PaymentAmountChoice.STATEMENT:
        amount = preparation.statement_balance if preparation is not None else Decimal("0")
        if amount <= 0:
            raise AmountValidationError("There is no statement balance to pay.")
    else:
        amount = parse_amount(custom_amount)
        statement = preparation.statement_balance if preparation is not None else Decimal("0")
        if statement > 0 and amount > statement:
            raise AmountValidationError(
                f"Payment amount cannot exceed statement balance of {_money(statement)}"
            )

    if amount > MAX_PAYMENT_AMOUNT:
        raise AmountValidationError(f"Payment amount cannot exceed {_money(MAX_PAYMENT_AMOUNT)}.")
    if available_balance is not None and amount > available_balance:
        raise AmountValidationError(
            f"Insufficient funds: the funding account has {_money(available_balance)} available."
        )
    return amount.quantize(CENT)


@dataclass
class TradeTicket:
    """What the user typed into the trade dialog."""

    account_id: str
    symbol: str
    action: TradeAction
    quantity: Optional[Number] = None
    dollar_amount: Optional[Number] = None
    order_type: OrderType = OrderType.MARKET
    limit_price: Optional[Number] = None
    time_in_force: TimeInForce = TimeInForce.DAY


def validate_trade(
    ticket: TradeTicket,
    supports_fractional: bool,
    available_balance: Optional[Decimal] = None,
    last_price: Optional[Decimal] = None,
) -> TradePreviewRequest:
    """
    Check a trade ticket and build the preview request for it.

    Buying power is only checked for buys, and only when the order's value
    can be estimated (dollar amount, limit price or a last price).
    """
    if not ticket.account_id or not (ticket.symbol or "").strip():
        raise AmountValidationError("Please fill in all required fields.")

    action = TradeAction(ticket.action)
    order_type = OrderType(ticket.order_type)
    quantity: Optional[Decimal] = None
    dollar_amount: Optional[Decimal] = None

    if ticket.dollar_amount not in (None, ""):
        if not supports_fractional:
            raise AmountValidationError(
                "Dollar amount orders are not supported by this brokerage. "
                "Please use share quantities instead."
            )
        dollar_amount = parse_positive(ticket.dollar_amount, "Please enter a valid dollar amount greater than 0.")
    else:
        quantity = parse_positive(ticket.quantity, "Please enter a valid quantity greater than 0.")
        if not supports_fractional and quantity != quantity.to_integral_value():
            raise AmountValidationError(
                "This brokerage does not support fractional shares. Please enter a whole number of shares."
            )

    limit_price: Optional[Decimal] = None
    if order_type == OrderType.LIMIT:
        limit_price = parse_positive(ticket.limit_price, "Please enter a valid limit price.")

    if action == TradeAction.BUY and available_balance is not None:
        price = limit_price or last_price
        if dollar_amount is not None:
            estimate: Optional[Decimal] = dollar_amount
        elif price is not None:
            estimate = quantity * price
        else:
            estimate = None
        if estimate is not None and estimate > available_balance:
            raise AmountValidationError(
                f"Insufficient buying power: order needs about {_money(estimate)}, "
                f"available {_money(available_balance)}."
            )

    try:
        return TradePreviewRequest(
            account_id=ticket.account_id,
            symbol=ticket.symbol.strip().upper(),
            action=action,
            order_type=order_type,
            quantity=quantity,
            dollar_amount=dollar_amount,
            limit_price=limit_price,
            time_in_force=TimeInForce(ticket.time_in_force),
        )
    except ValidationError as e:
        raise AmountValidationError(_first_error(e)) from e
