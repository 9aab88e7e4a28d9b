"""
Pytest configuration for Django app tests.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AbstractUser

import pytest


@pytest.fixture
def user() -> AbstractUser:
    """Create a regular customer account."""
    User = get_user_model()
    return User.objects.create_user(
        username="testuser",
        email="testuser@example.com",
        password="testpass123",
    )


@pytest.fixture
def staff_user() -> AbstractUser:
    """Create a restaurant staff account."""
    User = get_user_model()
    return User.objects.create_user(
        username="staffuser",
        email="staff@example.com",
        password="testpass123",
        is_staff=True,
    )
