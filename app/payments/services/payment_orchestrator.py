"""
Payment orchestrator for split and standard payments.

The orchestrator turns a checkout request into exactly one Stripe
PaymentIntent. For a split payment the platform fee and the merchant
transfer ride on the same intent (``application_fee_amount`` plus
``transfer_data.destination``), so Stripe records both or neither.

Provider errors are not retried here. A caller that retries must reuse the
same idempotency key; ``build_idempotency_key`` derives one from the
booking so retries of the same booking collapse into one intent.

Usage:
    from payments.services import CheckoutRequest, SplitPaymentOrchestrator

    orchestrator = SplitPaymentOrchestrator(adapter, FeePolicy.from_settings())
    outcome = orchestrator.create_payment(
        CheckoutRequest(
            gross_amount=5000,
            destination_account_id="acct_123",
            idempotency_key=build_idempotency_key("bk_42", 5000),
        )
    )
    outcome.client_secret  # hand to the client to confirm
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from core.services import BaseService

from payments.adapters import CreatePaymentIntentParams
from payments.exceptions import (
    AccountNotReadyError,
    InvalidStateTransitionError,
    ProviderError,
    ValidationError,
)
from payments.fees import FeePolicy, Split, compute_split
from payments.state_machines import SPLIT_PAYMENT_TRANSITIONS, SplitPaymentStatus

if TYPE_CHECKING:
    from payments.adapters import PaymentIntentResult, StripeAdapter


logger = logging.getLogger(__name__)


def build_idempotency_key(booking_id: str, amount: int) -> str:
    """
    Deterministic idempotency key for a booking payment.

    The amount is part of the key so a changed basket yields a new intent
    instead of Stripe rejecting the reused key with different parameters.
    """
    if not booking_id:
        raise ValidationError(
            "Booking ID required",
            details={"bookingId": ["This field is required."]},
        )
    return f"booking-payment:{booking_id}:{amount}"


# =============================================================================
# Value Types
# =============================================================================


@dataclass
class CheckoutRequest:
    """
    A request to take a payment.

    Attributes:
        gross_amount: Total charged to the customer, in minor units
        currency: ISO 4217 currency code (default: 'usd')
        destination_account_id: Merchant connected account; None for a
            standard platform payment
        metadata: Caller metadata copied onto the PaymentIntent
        idempotency_key: Optional key making caller retries safe
    """

    gross_amount: int
    currency: str = "usd"
    destination_account_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.gross_amount, bool) or not isinstance(self.gross_amount, int):
            raise ValidationError(
                "Amount must be an integer number of minor units",
                details={"amount": [f"Invalid amount: {self.gross_amount!r}"]},
            )
        if self.gross_amount <= 0:
            raise ValidationError(
                "Amount must be positive",
                details={"amount": [f"Invalid amount: {self.gross_amount}"]},
            )
        if not self.currency:
            raise ValidationError(
                "Currency required",
                details={"currency": ["This field is required."]},
            )

    @property
    def is_split(self) -> bool:
        return bool(self.destination_account_id)


@dataclass
class SplitPayment:
    """
    A payment divided between the platform and a merchant.

    requires_confirmation -> processing -> succeeded | failed | canceled.
    Succeeded and canceled are final; a failed attempt may be retried.
    """

    payment_intent_id: str
    gross_amount: int
    fee: int
    net: int
    currency: str
    destination_account_id: str | None
    status: str = SplitPaymentStatus.REQUIRES_CONFIRMATION

    def transition_to(self, new_status: str) -> None:
        """
        Move to ``new_status``.

        Repeating the current status is a no-op.

        Raises:
            InvalidStateTransitionError: On any move not allowed from the
                current status
        """
        if new_status == self.status:
            return
        allowed = SPLIT_PAYMENT_TRANSITIONS[SplitPaymentStatus(self.status)]
        if SplitPaymentStatus(new_status) not in allowed:
            raise InvalidStateTransitionError(
                f"Cannot move payment from '{self.status}' to '{new_status}'",
                details={
                    "payment_intent_id": self.payment_intent_id,
                    "current_state": str(self.status),
                    "target_state": str(new_status),
                },
            )
        self.status = new_status

    @property
    def is_terminal(self) -> bool:
        return not SPLIT_PAYMENT_TRANSITIONS[SplitPaymentStatus(self.status)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "paymentIntentId": self.payment_intent_id,
            "grossAmount": self.gross_amount,
            "platformFee": self.fee,
            "merchantNet": self.net,
            "currency": self.currency,
            "destinationAccountId": self.destination_account_id,
            "status": str(self.status),
        }


@dataclass
class PaymentIntentOutcome:
    """What the client needs to confirm the payment."""

    payment_intent_id: str
    client_secret: str | None
    fee: int
    net: int
    split_payment: SplitPayment

    def to_dict(self) -> dict[str, Any]:
        return {
            "paymentIntentId": self.payment_intent_id,
            "clientSecret": self.client_secret,
            "platformFee": self.fee,
            "ownerAmount": self.net,
            "splitPayment": self.split_payment.to_dict(),
        }


# =============================================================================
# Orchestrator
# =============================================================================


class SplitPaymentOrchestrator(BaseService):
    """
    Creates and tracks PaymentIntents.

    Usage:
        orchestrator = SplitPaymentOrchestrator(adapter)
        outcome = orchestrator.create_payment(request)
        payment = orchestrator.confirm_payment(outcome.payment_intent_id)
    """

    def __init__(self, adapter: StripeAdapter, fee_policy: FeePolicy | None = None):
        self.adapter = adapter
        self.fee_policy = fee_policy or FeePolicy()

    def create_payment(self, request: CheckoutRequest) -> PaymentIntentOutcome:
        """
        Create one PaymentIntent for the request.

        Raises:
            AccountNotReadyError: Destination missing or cannot take charges
            ProviderError: Stripe rejected the request (surfaced unmodified)
            ProviderTimeoutError: Stripe did not answer within the timeout
        """
        log = self.get_logger()

        if request.is_split:
            self._require_charges_enabled(request.destination_account_id)
            split = compute_split(request.gross_amount, self.fee_policy)
        else:
            split = Split(fee=0, net=request.gross_amount)

        metadata = {str(key): str(value) for key, value in request.metadata.items()}
        metadata.update(
            {
                "platform_fee": str(split.fee),
                "merchant_net": str(split.net),
                "destination_account_id": request.destination_account_id or "",
            }
        )

        intent = self.adapter.create_payment_intent(
            CreatePaymentIntentParams(
                amount_cents=request.gross_amount,
                currency=request.currency,
                idempotency_key=request.idempotency_key,
                metadata=metadata,
                application_fee_amount=split.fee if request.is_split else None,
                destination_account_id=request.destination_account_id,
            )
        )

        split_payment = SplitPayment(
            payment_intent_id=intent.id,
            gross_amount=request.gross_amount,
            fee=split.fee,
            net=split.net,
            currency=request.currency,
            destination_account_id=request.destination_account_id,
        )

        log.info(
            "Payment intent created",
            extra={
                "payment_intent_id": intent.id,
                "gross_amount": request.gross_amount,
                "platform_fee": split.fee,
                "merchant_net": split.net,
                "destination_account_id": request.destination_account_id,
            },
        )

        return PaymentIntentOutcome(
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            fee=split.fee,
            net=split.net,
            split_payment=split_payment,
        )

    def confirm_payment(
        self,
        payment_intent_id: str,
        previous: SplitPayment | None = None,
    ) -> SplitPayment:
        """
        Refresh a payment's status from Stripe.

        Args:
            payment_intent_id: The PaymentIntent to look up
            previous: Last known state, if the caller tracks one; the new
                status must not move backwards from it

        Raises:
            ValidationError: Missing payment intent id
            InvalidStateTransitionError: Stripe reports a status that cannot
                follow ``previous``
        """
        if not payment_intent_id:
            raise ValidationError(
                "Payment intent ID is required",
                details={"paymentIntentId": ["This field is required."]},
            )

        intent = self.adapter.retrieve_payment_intent(payment_intent_id)
        payment = previous or self._split_payment_from_intent(intent)
        payment.transition_to(
            SplitPaymentStatus.from_provider(
                intent.status, has_payment_error=bool(intent.last_payment_error)
            )
        )

        self.get_logger().info(
            "Payment status refreshed",
            extra={
                "payment_intent_id": payment_intent_id,
                "provider_status": intent.status,
                "status": str(payment.status),
            },
        )
        return payment

    def _require_charges_enabled(self, account_id: str) -> None:
        try:
            account = self.adapter.retrieve_account(account_id)
        except ProviderError as e:
            if e.reason == ProviderError.RESOURCE_MISSING:
                raise AccountNotReadyError(
                    "Connected account does not exist",
                    details={"account_id": account_id},
                ) from e
            raise

        if not account.charges_enabled:
            raise AccountNotReadyError(
                "Connected account cannot accept charges yet",
                details={"account_id": account_id},
            )

    @staticmethod
    def _split_payment_from_intent(intent: PaymentIntentResult) -> SplitPayment:
        fee = intent.application_fee_amount or 0
        return SplitPayment(
            payment_intent_id=intent.id,
            gross_amount=intent.amount_cents,
            fee=fee,
            net=intent.amount_cents - fee,
            currency=intent.currency,
            destination_account_id=intent.destination_account_id,
        )
