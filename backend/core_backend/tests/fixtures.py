"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like store locations, products and self-order sessions.
"""
import pytest
from decimal import Decimal
from django.utils import timezone
from datetime import timedelta

from products.models import Product, ProductVariant
from settings.models import StoreLocation, DiningTable


# ============================================================================
# STORE LOCATION FIXTURES
# ============================================================================

@pytest.fixture
def store_location(db):
    """Create the main outlet: 10% tax, 5% service charge"""
    return StoreLocation.objects.create(
        name='Kemang',
        business_name='Kopi Kemang',
        tax_rate=Decimal('10.00'),
        service_charge_rate=Decimal('5.00'),
    )


@pytest.fixture
def untaxed_location(db):
    """Create an outlet with no tax and no service charge"""
    return StoreLocation.objects.create(
        name='Warung Blok M',
        tax_rate=Decimal('0.00'),
        service_charge_rate=Decimal('0.00'),
    )


@pytest.fixture
def dining_table(store_location):
    """Create table A1 at the main outlet"""
    return DiningTable.objects.create(store_location=store_location, name='A1')


@pytest.fixture
def other_location_table(untaxed_location):
    """Create a table that belongs to a different outlet"""
    return DiningTable.objects.create(store_location=untaxed_location, name='B7')


# ============================================================================
# PRODUCT FIXTURES
# ============================================================================

@pytest.fixture
def nasi_goreng(db):
    """Create a product priced 10,000"""
    return Product.objects.create(
        name='Nasi Goreng',
        description='Fried rice with egg',
        price=Decimal('10000.00'),
    )


@pytest.fixture
def es_kopi(db):
    """Create a product with a base price and two variants"""
    return Product.objects.create(
        name='Es Kopi Susu',
        price=Decimal('18000.00'),
    )


@pytest.fixture
def es_kopi_large(es_kopi):
    """Create the large variant of es kopi (25,000)"""
    return ProductVariant.objects.create(
        product=es_kopi,
        name='Large',
        price=Decimal('25000.00'),
    )


@pytest.fixture
def inactive_product(db):
    """Create a product that cannot be ordered"""
    return Product.objects.create(
        name='Seasonal Special',
        price=Decimal('30000.00'),
        is_active=False,
    )


# ============================================================================
# SELF-ORDER SESSION FIXTURES
# ============================================================================

@pytest.fixture
def active_session(store_location, dining_table):
    """Create an active session at table A1"""
    from self_order.services import SessionStore
    return SessionStore.create_session(store_location, table=dining_table)


@pytest.fixture
def session_with_items(active_session, nasi_goreng):
    """Active session with 2 x Nasi Goreng (subtotal 20,000)"""
    from self_order.services import SessionStore
    SessionStore.add_item(active_session.session_code, nasi_goreng.id, quantity=1)
    SessionStore.add_item(active_session.session_code, nasi_goreng.id, quantity=1, notes='Pedas')
    active_session.refresh_from_db()
    return active_session


@pytest.fixture
def submitted_session(session_with_items):
    """Session with items that has been submitted to the kitchen"""
    from self_order.services import KitchenHandoffService
    KitchenHandoffService.submit(session_with_items.session_code)
    session_with_items.refresh_from_db()
    return session_with_items


@pytest.fixture
def overdue_session(session_with_items):
    """Active session whose deadline passed but has not been swept yet"""
    from self_order.models import SelfOrderSession
    past = timezone.now() - timedelta(minutes=5)
    SelfOrderSession.objects.filter(pk=session_with_items.pk).update(expires_at=past)
    session_with_items.refresh_from_db()
    return session_with_items


@pytest.fixture
def make_session(store_location):
    """
    Factory for sessions in an arbitrary status and deadline.

    Usage:
        session = make_session(status='expired', expires_at=timezone.now() - timedelta(days=2))
    """
    from self_order.models import SelfOrderSession
    from self_order.services import SessionStore

    def _make(status='active', expires_at=None, location=None):
        session = SessionStore.create_session(location or store_location)
        updates = {'status': status}
        if expires_at is not None:
            updates['expires_at'] = expires_at
        SelfOrderSession.objects.filter(pk=session.pk).update(**updates)
        session.refresh_from_db()
        return session

    return _make
