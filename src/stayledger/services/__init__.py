"""Booking core services.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── DynamoResourceCatalog / DynamoUserDirectory (read-only)
        ├── AvailabilityIndex
        │       └── ReservationService
        ├── LoyaltyLedger
        └── BookingOrchestrator (ReservationService + LoyaltyLedger)
"""

from .availability import AvailabilityIndex, find_conflicts, intervals_overlap
from .booking import BookingOrchestrator
from .catalog import DynamoResourceCatalog, DynamoUserDirectory, ResourceCatalog, UserDirectory
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .loyalty import LoyaltyLedger
from .reservation_state import TRANSITIONS, allowed_events, next_status
from .reservations import ReservationService

__all__ = [
    "AvailabilityIndex",
    "BookingOrchestrator",
    "DynamoDBService",
    "DynamoResourceCatalog",
    "DynamoUserDirectory",
    "LoyaltyLedger",
    "ReservationService",
    "ResourceCatalog",
    "TRANSITIONS",
    "UserDirectory",
    "allowed_events",
    "find_conflicts",
    "get_dynamodb_service",
    "intervals_overlap",
    "next_status",
    "reset_dynamodb_service",
]
