"""Enumeration types for booking and loyalty data models."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Status of a reservation.

    PENDING is reserved for a future hold-then-confirm flow; reservations
    are currently created CONFIRMED.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REASSIGNED = "reassigned"


class ReservationEvent(str, Enum):
    """Events that drive reservation status transitions."""

    CONFIRM = "confirm"
    MODIFY = "modify"
    CANCEL = "cancel"
    REASSIGN = "reassign"


class ResourceKind(str, Enum):
    """Kind of bookable resource in the catalog."""

    ROOM = "room"
    INSTALLATION = "installation"


class PricingUnit(str, Enum):
    """What a resource's unit price is charged per."""

    NIGHT = "night"
    HOUR = "hour"


class UserRole(str, Enum):
    """Role of a user in the directory."""

    CLIENT = "client"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class LoyaltyTransactionType(str, Enum):
    """Direction of a loyalty ledger entry."""

    EARN = "earn"
    REDEEM = "redeem"
