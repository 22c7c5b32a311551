"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.core.cache import cache


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def clear_cache_after_test():
    """
    Clear cache after each test to prevent cache pollution.
    """
    yield  # Run the test
    cache.clear()


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/self-order/sessions/SO-XXXX/')
            assert response.status_code == 404
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def staff_client(admin_user):
    """
    Provide API client authenticated as a Django admin (is_staff) user.

    Usage:
        def test_staff_listing(staff_client):
            response = staff_client.get('/api/self-order/admin/sessions/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *  # noqa: E402,F401,F403
