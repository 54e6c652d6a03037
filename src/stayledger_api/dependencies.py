"""FastAPI dependency injection providers for core services.

Service instances are created lazily and cached with @lru_cache so a process
(or Lambda container) reuses one DynamoDB client.

Usage in routes:
    from stayledger_api.dependencies import get_reservation_service

    @router.get("/reservations/{reservation_id}")
    def get_reservation(
        reservation_id: str,
        service: ReservationService = Depends(get_reservation_service),
    ):
        ...

Caller identity:
    API Gateway authenticates the request and injects the caller's user id
    in the x-user-id header. Handlers pass it to the core explicitly.

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from stayledger.config import get_settings
from stayledger.models import User
from stayledger.services.availability import AvailabilityIndex
from stayledger.services.booking import BookingOrchestrator
from stayledger.services.catalog import DynamoResourceCatalog, DynamoUserDirectory
from stayledger.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from stayledger.services.loyalty import LoyaltyLedger
from stayledger.services.reservations import ReservationService

USER_ID_HEADER = "x-user-id"


@lru_cache
def get_resource_catalog() -> DynamoResourceCatalog:
    return DynamoResourceCatalog(db=get_dynamodb_service())


@lru_cache
def get_user_directory() -> DynamoUserDirectory:
    return DynamoUserDirectory(db=get_dynamodb_service())


@lru_cache
def get_availability_index() -> AvailabilityIndex:
    return AvailabilityIndex(db=get_dynamodb_service())


@lru_cache
def get_reservation_service() -> ReservationService:
    """Get cached ReservationService instance.

    Returns:
        ReservationService wired to the DynamoDB singleton, catalog and directory.
    """
    return ReservationService(
        db=get_dynamodb_service(),
        availability=get_availability_index(),
        catalog=get_resource_catalog(),
        users=get_user_directory(),
        settings=get_settings(),
    )


@lru_cache
def get_loyalty_ledger() -> LoyaltyLedger:
    """Get cached LoyaltyLedger instance."""
    return LoyaltyLedger(
        db=get_dynamodb_service(),
        users=get_user_directory(),
        settings=get_settings(),
    )


@lru_cache
def get_booking_orchestrator() -> BookingOrchestrator:
    """Get cached BookingOrchestrator instance."""
    return BookingOrchestrator(
        db=get_dynamodb_service(),
        reservations=get_reservation_service(),
        ledger=get_loyalty_ledger(),
    )


def get_caller_id(request: Request) -> str:
    """Extract the authenticated caller's user id.

    Raises:
        HTTPException: 401 if the gateway did not supply an identity
    """
    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


def get_caller(
    user_id: str = Depends(get_caller_id),
    users: DynamoUserDirectory = Depends(get_user_directory),
) -> User:
    """Resolve the caller in the user directory.

    Raises:
        HTTPException: 401 if the caller is unknown to the directory
    """
    user = users.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_staff(caller: User = Depends(get_caller)) -> User:
    """Allow only employees and administrators.

    Raises:
        HTTPException: 403 for clients
    """
    if not caller.is_staff:
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN,
            detail="Staff role required",
        )
    return caller


def reset_services() -> None:
    """Clear all cached service instances and settings.

    Call this in test fixtures to ensure clean state between tests.
    """
    get_resource_catalog.cache_clear()
    get_user_directory.cache_clear()
    get_availability_index.cache_clear()
    get_reservation_service.cache_clear()
    get_loyalty_ledger.cache_clear()
    get_booking_orchestrator.cache_clear()
    get_settings.cache_clear()

    reset_dynamodb_service()
