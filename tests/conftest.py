"""Pytest configuration and fixtures for stayledger tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all tables from the schema module)
- A seeded resource catalog and user directory
- A frozen clock and fully wired core services
"""

import os
from typing import Generator

import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-stayledger")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from stayledger.config import Settings, get_settings  # noqa: E402
from stayledger.services.availability import AvailabilityIndex  # noqa: E402
from stayledger.services.booking import BookingOrchestrator  # noqa: E402
from stayledger.services.catalog import (  # noqa: E402
    DynamoResourceCatalog,
    DynamoUserDirectory,
)
from stayledger.services.dynamodb import DynamoDBService  # noqa: E402
from stayledger.services.loyalty import LoyaltyLedger  # noqa: E402
from stayledger.services.reservations import ReservationService  # noqa: E402
from stayledger.services.schema import create_tables  # noqa: E402
from stayledger.utils.clock import FrozenClock  # noqa: E402
from tests.factories import NOW, seed_directory  # noqa: E402

# === Singleton reset ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Reset cached settings, services and the DynamoDB singleton around each test.

    Tests using mock_aws need a fresh client created inside the mock
    context rather than one left over from a previous test.
    """
    from stayledger_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def settings() -> Settings:
    """Settings built from the test environment."""
    return get_settings()


@pytest.fixture
def db(settings: Settings) -> Generator[DynamoDBService, None, None]:
    """DynamoDB service over moto with all tables created and seeded."""
    with mock_aws():
        service = DynamoDBService(settings)
        create_tables(service.client, settings.table_prefix)
        seed_directory(service)
        yield service


# === Service Fixtures ===


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def catalog(db: DynamoDBService) -> DynamoResourceCatalog:
    return DynamoResourceCatalog(db)


@pytest.fixture
def users(db: DynamoDBService) -> DynamoUserDirectory:
    return DynamoUserDirectory(db)


@pytest.fixture
def availability(db: DynamoDBService) -> AvailabilityIndex:
    return AvailabilityIndex(db)


@pytest.fixture
def reservations(
    db: DynamoDBService,
    availability: AvailabilityIndex,
    catalog: DynamoResourceCatalog,
    users: DynamoUserDirectory,
    settings: Settings,
    clock: FrozenClock,
) -> ReservationService:
    return ReservationService(db, availability, catalog, users, settings, clock)


@pytest.fixture
def ledger(
    db: DynamoDBService,
    users: DynamoUserDirectory,
    settings: Settings,
    clock: FrozenClock,
) -> LoyaltyLedger:
    return LoyaltyLedger(db, users, settings, clock)


@pytest.fixture
def orchestrator(
    db: DynamoDBService,
    reservations: ReservationService,
    ledger: LoyaltyLedger,
) -> BookingOrchestrator:
    return BookingOrchestrator(db, reservations, ledger)
