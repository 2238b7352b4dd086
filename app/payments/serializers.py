"""
Serializers for payments API requests.

Request bodies use the camelCase keys the owner dashboard sends; each
serializer maps them onto the snake_case arguments of the services.

Usage:
    serializer = CreatePaymentIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    request = serializer.to_checkout_request()
"""

from __future__ import annotations

from rest_framework import serializers

from payments.services import CheckoutRequest, build_idempotency_key
from payments.state_machines import SubscriptionTier


class CreateAccountSerializer(serializers.Serializer):
    """
    Connected account creation.

    Fields:
        email: Owner email for the Stripe account
        businessName: Public business name
        barId: Bar the account will be linked to (optional)
    """

    email = serializers.EmailField()
    businessName = serializers.CharField(max_length=200)
    barId = serializers.UUIDField(required=False, allow_null=True)


class AccountIdSerializer(serializers.Serializer):
    """Any operation on an existing connected account."""

    accountId = serializers.CharField(max_length=255)
    barId = serializers.UUIDField(required=False, allow_null=True)


class AccountManagementSerializer(serializers.Serializer):
    """
    Account management actions.

    disconnect-single requires accountId; delete-user-accounts acts on the
    requesting user's bars, and a userId, when sent, must name that user.
    """

    ACTION_DISCONNECT_SINGLE = "disconnect-single"
    ACTION_DELETE_USER_ACCOUNTS = "delete-user-accounts"

    action = serializers.ChoiceField(
        choices=[ACTION_DISCONNECT_SINGLE, ACTION_DELETE_USER_ACCOUNTS],
    )
    accountId = serializers.CharField(max_length=255, required=False)
    userId = serializers.CharField(max_length=255, required=False)

    def validate(self, attrs):
        if attrs["action"] == self.ACTION_DISCONNECT_SINGLE and not attrs.get("accountId"):
            raise serializers.ValidationError({"accountId": ["This field is required."]})
        return attrs


class CreatePaymentIntentSerializer(serializers.Serializer):
    """
    Payment creation.

    Amount is in minor units. With barAccountId the payment is split with
    the bar; without it the platform keeps the whole amount.
    """

    amount = serializers.IntegerField(min_value=1)
    currency = serializers.CharField(max_length=3, default="usd")
    barAccountId = serializers.CharField(max_length=255, required=False, allow_blank=True)
    bookingId = serializers.CharField(max_length=255, required=False, allow_blank=True)
    metadata = serializers.DictField(child=serializers.CharField(), required=False)

    def to_checkout_request(self) -> CheckoutRequest:
        data = self.validated_data
        metadata = dict(data.get("metadata") or {})
        idempotency_key = None
        if data.get("bookingId"):
            metadata["booking_id"] = data["bookingId"]
            idempotency_key = build_idempotency_key(data["bookingId"], data["amount"])
        return CheckoutRequest(
            gross_amount=data["amount"],
            currency=data["currency"].lower(),
            destination_account_id=data.get("barAccountId") or None,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )


class ConfirmPaymentSerializer(serializers.Serializer):
    paymentIntentId = serializers.CharField(max_length=255)


class SubscriptionCheckoutSerializer(serializers.Serializer):
    """
    Subscription checkout.

    Redirect URLs default to the dashboard when omitted.
    """

    tier = serializers.ChoiceField(choices=SubscriptionTier.choices)
    successUrl = serializers.URLField(required=False)
    cancelUrl = serializers.URLField(required=False)
    customerId = serializers.CharField(max_length=255, required=False, allow_blank=True)
