"""Read-only views of the external resource catalog and user directory."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PricingUnit, ResourceKind, UserRole


class Money(BaseModel):
    """A fixed-point amount tagged with its currency."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., description="Amount in currency units")
    currency: str = Field(
        ..., pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code"
    )

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


class Resource(BaseModel):
    """A bookable unit as published by the catalog.

    Rooms are booked over half-open date intervals and priced per night.
    Installations (sauna, meeting room) are booked over half-open UTC
    date-time intervals and priced per started hour.
    """

    resource_id: str = Field(..., description="Catalog identifier")
    kind: ResourceKind = Field(default=ResourceKind.ROOM)
    name: str = Field(default="", description="Display name")
    capacity: int = Field(..., ge=1, description="Maximum number of guests")
    unit_price: Decimal = Field(..., gt=0, description="Price per night or per hour")
    currency: str = Field(default="EUR", pattern=r"^[A-Z]{3}$")

    @property
    def pricing_unit(self) -> PricingUnit:
        if self.kind == ResourceKind.INSTALLATION:
            return PricingUnit.HOUR
        return PricingUnit.NIGHT


class User(BaseModel):
    """A user known to the directory."""

    user_id: str
    role: UserRole = UserRole.CLIENT

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.EMPLOYEE, UserRole.ADMIN)
