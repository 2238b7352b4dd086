"""
DRF views for payments app.

This module provides API views for:
- Stripe Connect onboarding and account status (action-dispatched)
- Account management (single disconnect, bulk teardown)
- Split and standard payment intents
- Subscription checkout and booking usage

Related files:
    - services/: Business logic
    - serializers.py: Request validation
    - webhooks/views.py: Stripe webhook endpoints
    - urls.py: URL routing

Endpoints:
    GET|POST /api/v1/stripe-connect/?action=... - Connect operations
    POST /api/v1/account-management/ - Disconnect or tear down accounts
    POST /api/v1/payments/intents/ - Create a payment intent
    POST /api/v1/payments/confirm/ - Refresh a payment's status
    POST /api/v1/subscriptions/checkout/ - Start subscription checkout
    POST /api/v1/subscriptions/bookings/ - Record a booking
    GET /api/v1/subscriptions/limits/ - Booking allowance

Security:
    - All endpoints require authentication
    - Application errors are rendered by core.exceptions.api_exception_handler
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.exceptions import MethodNotAllowed, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from bars.models import Bar
from core.exceptions import NotFoundError

from payments.adapters import StripeAdapter
from payments.config import StripeConfig
from payments.exceptions import ValidationError
from payments.fees import FeePolicy
from payments.serializers import (
    AccountIdSerializer,
    AccountManagementSerializer,
    ConfirmPaymentSerializer,
    CreateAccountSerializer,
    CreatePaymentIntentSerializer,
    SubscriptionCheckoutSerializer,
)
from payments.services import (
    BarConnectStatusService,
    BookingUsageService,
    BulkAccountTeardown,
    ConnectAccountService,
    SplitPaymentOrchestrator,
    SubscriptionCheckoutService,
)

logger = logging.getLogger(__name__)


def _stripe() -> tuple[StripeAdapter, StripeConfig]:
    config = StripeConfig.from_settings()
    return StripeAdapter(config), config


def _account_service() -> ConnectAccountService:
    adapter, config = _stripe()
    return ConnectAccountService(adapter, config)


def _query_account_id(request) -> str:
    account_id = request.query_params.get("accountId")
    if not account_id:
        raise ValidationError(
            "Account ID required",
            details={"accountId": ["This field is required."]},
        )
    return account_id


# =============================================================================
# Stripe Connect
# =============================================================================


class StripeConnectView(APIView):
    """
    Connect operations selected by the ``action`` query parameter.

    GET actions: get-account, debug-account, payment-stats
    POST actions: create-account, create-account-link, login-link

    An unknown action returns 400; a known action called with the wrong
    method returns 405.
    """

    permission_classes = [IsAuthenticated]

    GET_ACTIONS = {
        "get-account": "get_account",
        "debug-account": "debug_account",
        "payment-stats": "payment_stats",
    }
    POST_ACTIONS = {
        "create-account": "create_account",
        "create-account-link": "create_account_link",
        "login-link": "login_link",
    }

    def _dispatch_action(self, request, actions: dict[str, str]):
        action = request.query_params.get("action", "")
        handler_name = actions.get(action)
        if handler_name is None:
            if action in self.GET_ACTIONS or action in self.POST_ACTIONS:
                raise MethodNotAllowed(request.method)
            raise ValidationError(
                "Invalid action",
                details={"action": [f"Unknown action: {action or '(missing)'}"]},
            )
        return getattr(self, handler_name)(request)

    @extend_schema(
        summary="Connect account queries",
        tags=["Stripe Connect"],
        parameters=[
            OpenApiParameter("action", str, enum=list(GET_ACTIONS)),
            OpenApiParameter("accountId", str),
        ],
    )
    def get(self, request):
        return self._dispatch_action(request, self.GET_ACTIONS)

    @extend_schema(
        summary="Connect account operations",
        tags=["Stripe Connect"],
        parameters=[OpenApiParameter("action", str, enum=list(POST_ACTIONS))],
    )
    def post(self, request):
        return self._dispatch_action(request, self.POST_ACTIONS)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def create_account(self, request):
        serializer = CreateAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        owner_id = str(request.user.pk)

        bar = None
        if data.get("barId"):
            bar = Bar.objects.filter(pk=data["barId"], owner_id=owner_id).first()
            if bar is None:
                raise NotFoundError("Bar not found", details={"barId": str(data["barId"])})

        created = _account_service().create_account(
            email=data["email"],
            business_name=data["businessName"],
            owner_id=owner_id,
            bar_id=str(bar.pk) if bar else None,
        )
        if bar is not None:
            bar.link_connect_account(created["account_id"])

        return Response(
            {
                "accountId": created["account_id"],
                "onboardingUrl": created["onboarding_url"],
            },
            status=status.HTTP_201_CREATED,
        )

    def get_account(self, request):
        account = _account_service().get_account_status(_query_account_id(request))
        BarConnectStatusService.sync_status(account.account_id, account.status)
        return Response(account.to_dict())

    def create_account_link(self, request):
        serializer = AccountIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account_id = serializer.validated_data["accountId"]
        bar_id = serializer.validated_data.get("barId")
        url = _account_service().create_account_link(
            account_id,
            bar_id=str(bar_id) if bar_id else None,
        )
        return Response({"accountId": account_id, "onboardingUrl": url})

    def login_link(self, request):
        serializer = AccountIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        url = _account_service().create_login_link(serializer.validated_data["accountId"])
        return Response({"url": url})

    def debug_account(self, request):
        return Response(_account_service().debug_account(_query_account_id(request)))

    def payment_stats(self, request):
        return Response(_account_service().payment_stats(_query_account_id(request)))


class AccountManagementView(APIView):
    """
    Remove connected accounts.

    POST /api/v1/account-management/

    Request body:
        {"action": "disconnect-single", "accountId": "acct_123"}
        {"action": "delete-user-accounts", "userId": "<own user id, optional>"}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Disconnect or delete connected accounts",
        tags=["Stripe Connect"],
        request=AccountManagementSerializer,
    )
    def post(self, request):
        serializer = AccountManagementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = str(request.user.pk)
        service = _account_service()

        if serializer.validated_data["action"] == serializer.ACTION_DELETE_USER_ACCOUNTS:
            requested_user = serializer.validated_data.get("userId")
            if requested_user and requested_user != user_id:
                raise PermissionDenied("Cannot delete another user's accounts")
            report = BulkAccountTeardown(service).teardown_all_accounts_for_user(user_id)
            return Response(report.to_dict())

        account_id = serializer.validated_data["accountId"]
        owned = Bar.objects.filter(owner_id=user_id, connect_account_id=account_id).exists()
        if not owned:
            raise NotFoundError(
                "Connected account not found",
                details={"accountId": account_id},
            )

        result = service.delete_account(account_id)
        if not result.success:
            # A held balance is reported to the owner, not treated as an error
            return Response(
                {
                    "success": False,
                    "error": result.message,
                    "reason": str(result.reason),
                    "accountId": account_id,
                },
                status=(
                    status.HTTP_200_OK
                    if result.is_benign_failure
                    else status.HTTP_502_BAD_GATEWAY
                ),
            )

        BarConnectStatusService.clear_account(account_id)
        return Response(
            {
                "success": True,
                "message": "Stripe account disconnected successfully",
                "deletedAccountId": account_id,
            }
        )


# =============================================================================
# Payments
# =============================================================================


class PaymentIntentView(APIView):
    """
    Create a payment intent.

    POST /api/v1/payments/intents/

    With barAccountId the platform fee and the bar's share are settled in
    one PaymentIntent; the response carries the client secret to confirm it.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create payment intent",
        tags=["Payments"],
        request=CreatePaymentIntentSerializer,
    )
    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checkout_request = serializer.to_checkout_request()
        checkout_request.metadata.setdefault("customer_id", str(request.user.pk))

        adapter, _ = _stripe()
        outcome = SplitPaymentOrchestrator(
            adapter, FeePolicy.from_settings()
        ).create_payment(checkout_request)
        return Response(outcome.to_dict(), status=status.HTTP_201_CREATED)


class ConfirmPaymentView(APIView):
    """Refresh a payment's status from Stripe."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Confirm payment status",
        tags=["Payments"],
        request=ConfirmPaymentSerializer,
    )
    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        adapter, _ = _stripe()
        payment = SplitPaymentOrchestrator(adapter).confirm_payment(
            serializer.validated_data["paymentIntentId"]
        )
        return Response(payment.to_dict())


# =============================================================================
# Subscriptions
# =============================================================================


class SubscriptionCheckoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create subscription checkout session",
        tags=["Subscriptions"],
        request=SubscriptionCheckoutSerializer,
    )
    def post(self, request):
        serializer = SubscriptionCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        adapter, config = _stripe()
        session = SubscriptionCheckoutService(adapter, config).create_checkout_session(
            user_id=str(request.user.pk),
            email=getattr(request.user, "email", None) or None,
            tier=data["tier"],
            success_url=data.get("successUrl"),
            cancel_url=data.get("cancelUrl"),
            customer_id=data.get("customerId") or None,
        )
        return Response(
            {
                "success": True,
                "checkoutUrl": session["checkout_url"],
                "sessionId": session["session_id"],
            }
        )


class BookingRecordView(APIView):
    """Count one booking against the user's active subscription."""

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Record booking", tags=["Subscriptions"], request=None)
    def post(self, request):
        bookings_used = BookingUsageService.record_booking(str(request.user.pk))
        return Response({"success": True, "bookingsUsed": bookings_used})


class BookingLimitsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Booking limits", tags=["Subscriptions"])
    def get(self, request):
        limits = BookingUsageService.booking_limits(str(request.user.pk))
        return Response(
            {
                "tier": limits["tier"],
                "limit": limits["limit"],
                "currentUsage": limits["current_usage"],
                "remaining": limits["remaining"],
                "canBook": limits["can_book"],
            }
        )
