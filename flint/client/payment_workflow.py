"""
Card payment dialog.

Flow: pick a funding account -> capability check -> prepare (card
metadata) -> pick an amount -> create -> poll status until the provider
reports a terminal status. On success the dialog closes and cached
account, dashboard and transaction data is invalidated.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from flint.client.cache import PAYMENT_INVALIDATES
from flint.client.errors import AmountValidationError, FlintClientError, MfaRequired
from flint.client.validation import Number, parse_amount, resolve_payment_amount, validate_memo
from flint.client.workflow import MFA_MESSAGE, DialogWorkflow
from flint.config import settings
from flint.models.enums import (
    PAYMENT_FAILURE_STATUSES,
    PAYMENT_SUCCESS_STATUSES,
    PaymentAmountChoice,
    ViewState,
)
from flint.schemas.payments import CapabilityResponse, PaymentStatusResponse, PreparationSnapshot

logger = logging.getLogger("flint.client.payments")

UNVERIFIED_REASON = "Unable to verify payment support. Please try again."
SUCCESS_MESSAGE = "Your payment has been initiated and will be processed shortly."
FAILURE_MESSAGE = "There was an error processing your payment. Please try again."
TIMEOUT_MESSAGE = "The payment is still processing. Check your card's activity later for the final status."


def _status_state(status: str) -> ViewState:
    if status in PAYMENT_SUCCESS_STATUSES:
        return ViewState.COMPLETED
    if status in PAYMENT_FAILURE_STATUSES:
        return ViewState.FAILED
    return ViewState.PROCESSING


class PaymentWorkflow(DialogWorkflow):
    kind = "payment"

    def __init__(
        self,
        api,
        card_account_id: str,
        *,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(api, **kwargs)
        self.card_account_id = card_account_id
        self.from_account_id: Optional[str] = None
        self.capability: Optional[CapabilityResponse] = None
        self.preparation: Optional[PreparationSnapshot] = None
        self.payment_id: Optional[str] = None
        self.last_status: Optional[str] = None
        self.poll_interval = poll_interval if poll_interval is not None else settings.payment_poll_interval
        self.max_attempts = max_attempts if max_attempts is not None else settings.payment_poll_max_attempts

    @property
    def can_submit(self) -> bool:
        return (
            not self.closed
            and not self.busy
            and self.state == ViewState.IDLE
            and bool(self.from_account_id)
            and self.capability is not None
            and self.capability.can_pay
        )

    async def select_funding_account(self, account_id: Optional[str]) -> Optional[CapabilityResponse]:
        """Changing the funding account drops the old capability and card snapshot."""
        self.from_account_id = account_id or None
        self.capability = None
        self.preparation = None
        self.mfa_connect_token = None
        return await self.check_capability()

    async def check_capability(self) -> Optional[CapabilityResponse]:
        """
        Ask whether the selected pair can transact.

        Any failure counts as "not capable", so submission stays blocked.
        """
        if not self.from_account_id or not self.card_account_id:
            self.capability = None
            return None
        try:
            self.capability = await self.api.payment_capability(self.from_account_id, self.card_account_id)
        except FlintClientError as e:
            logger.warning("Capability check failed: %s", e)
            self.capability = CapabilityResponse(can_pay=False, reason=UNVERIFIED_REASON)
        return self.capability

    async def _load_preparation(self) -> bool:
        self._transition(ViewState.PREPARING)
        try:
            self.preparation = await self.api.prepare_payment(self.from_account_id, self.card_account_id)
        except FlintClientError as e:
            logger.warning("Preparing payment to %s failed: %s", self.card_account_id, e)
            self._transition(ViewState.FAILED, f"Could not load card details: {e}")
            return False
        self._transition(ViewState.IDLE)
        return True

    async def prepare(self) -> Optional[PreparationSnapshot]:
        """Load (or refresh) the card's minimum due, statement balance and due date."""
        if self.closed or self.busy or self.state != ViewState.IDLE or not self.from_account_id:
            return None
        self._busy = True
        try:
            await self._load_preparation()
        finally:
            self._busy = False
        return self.preparation

    async def submit(
        self,
        choice: Union[PaymentAmountChoice, str] = PaymentAmountChoice.MINIMUM,
        custom_amount: Optional[Number] = None,
        memo: str = "",
        available_balance: Optional[Decimal] = None,
    ) -> ViewState:
        """
        Submit the payment and follow it to a terminal state.

        Returns the view state the dialog ends in. Validation problems leave
        the dialog idle with `message` set and make no create request.
        """
        if self.closed or self.busy or self.state != ViewState.IDLE:
            return self.state
        if not self.from_account_id:
            self.message = "Please select a funding account."
            return self.state
        if self.capability is None or not self.capability.can_pay:
            self.message = (self.capability and self.capability.reason) or UNVERIFIED_REASON
            return self.state

        choice = PaymentAmountChoice(choice)
        try:
            memo = validate_memo(memo)
            if choice == PaymentAmountChoice.CUSTOM:
                parse_amount(custom_amount)
            if self.preparation is not None:
                resolve_payment_amount(choice, self.preparation, custom_amount, available_balance)
        except AmountValidationError as e:
            self.message = str(e)
            return self.state

        self._busy = True
        self.message = None
        self.mfa_connect_token = None
        try:
            if self.preparation is None and not await self._load_preparation():
                return self.state
            try:
                amount = resolve_payment_amount(choice, self.preparation, custom_amount, available_balance)
            except AmountValidationError as e:
                self.message = str(e)
                return self.state
            return await self._create_and_poll(amount, memo)
        finally:
            self._busy = False

    async def _create_and_poll(self, amount: Decimal, memo: str) -> ViewState:
        self._transition(ViewState.CREATING)
        try:
            created = await self.api.create_payment(self.from_account_id, self.card_account_id, amount, memo)
        except MfaRequired as e:
            # TODO: hand connect_token to the Teller Connect widget once it is wired into the UI.
            logger.info("Payment to %s needs MFA", self.card_account_id)
            self.mfa_connect_token = e.connect_token
            self._transition(ViewState.IDLE, MFA_MESSAGE)
            return self.state
        except AmountValidationError as e:
            self._transition(ViewState.IDLE, str(e))
            return self.state
        except FlintClientError as e:
            logger.warning("Creating payment to %s failed: %s", self.card_account_id, e)
            self._transition(ViewState.FAILED, str(e) or FAILURE_MESSAGE)
            return self.state

        self.payment_id = created.payment_id
        self.last_status = created.status
        logger.info("Payment %s created for %s; polling status", created.payment_id, amount)
        self._transition(ViewState.PROCESSING)

        def observe(response: PaymentStatusResponse) -> None:
            self.last_status = response.status
            self.poll_states.append(_status_state(response.status))

        try:
            outcome = await self._poll(
                lambda: self.api.payment_status(created.payment_id),
                lambda response: _status_state(response.status) != ViewState.PROCESSING,
                self.poll_interval,
                self.max_attempts,
                observe,
            )
        except FlintClientError as e:
            logger.warning("Polling payment %s failed: %s", created.payment_id, e)
            self._transition(ViewState.FAILED, FAILURE_MESSAGE)
            return self.state

        if outcome is None:
            return self.state

        if outcome.exhausted:
            self._transition(ViewState.FAILED, TIMEOUT_MESSAGE)
        elif _status_state(outcome.result.status) == ViewState.COMPLETED:
            self._transition(ViewState.COMPLETED, SUCCESS_MESSAGE)
            self._invalidate(PAYMENT_INVALIDATES, f"payment {created.payment_id} {outcome.result.status}")
            self.close()
        else:
            self._transition(ViewState.FAILED, FAILURE_MESSAGE)
        return self.state

    def retry(self) -> bool:
        if not super().retry():
            return False
        self.payment_id = None
        self.last_status = None
        self.poll_states = []
        return True
