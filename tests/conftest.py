"""
Pytest configuration and fixtures for the shopfront tests.
"""

import pytest

from shopfront import create_app
from tests.doubles import InMemoryDatabase, RecordingCheckoutClient


# =============================================================================
# Application Fixtures
# =============================================================================

TEST_CONFIG = {"TESTING": True, "BCRYPT_ROUNDS": 4}


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def checkout_client():
    return RecordingCheckoutClient()


@pytest.fixture
def app(db, checkout_client):
    return create_app(TEST_CONFIG, db=db, checkout_client=checkout_client)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client():
    """Build a test client around custom store/payment doubles."""

    def factory(db=None, checkout_client=None):
        application = create_app(
            TEST_CONFIG,
            db=db if db is not None else InMemoryDatabase(),
            checkout_client=checkout_client or RecordingCheckoutClient(),
        )
        return application.test_client()

    return factory


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def signup_data() -> dict:
    return {
        "firstName": "Asha",
        "lastName": "Rao",
        "email": "asha@example.com",
        "password": "hunter22",
        "confirmPassword": "hunter22",
        "image": "data:image/png;base64,iVBORw0KGgo=",
    }


@pytest.fixture
def product_data() -> dict:
    return {
        "name": "Fresh Mangoes",
        "category": "fruits",
        "image": "data:image/jpeg;base64,/9j/4AAQ",
        "price": "120",
        "description": "Alphonso mangoes, 1kg box.",
    }


@pytest.fixture
def contact_data() -> dict:
    return {
        "name": "Ravi",
        "email": "ravi@example.com",
        "message": "Do you deliver on Sundays?",
    }
