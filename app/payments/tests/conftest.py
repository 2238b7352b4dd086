"""
Pytest fixtures for payment model and API tests.

Usage:
    def test_booking(active_subscription):
        assert active_subscription.bookings_remaining == 100
"""

import pytest

from bars.tests.factories import BarFactory
from payments.state_machines import SubscriptionStatus
from payments.tests.factories import SubscriptionFactory


@pytest.fixture
def active_subscription(user):
    """Active starter subscription owned by ``user``."""
    return SubscriptionFactory(user_id=str(user.pk))


@pytest.fixture
def cancelled_subscription(db):
    return SubscriptionFactory(status=SubscriptionStatus.CANCELLED)


@pytest.fixture
def owned_bar(user):
    """Bar owned by ``user`` with a linked, active connected account."""
    return BarFactory(owner_id=str(user.pk), connect_account_id="acct_owned", active=True)
