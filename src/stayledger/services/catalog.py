"""Read-only adapters for the resource catalog and the user directory."""

from typing import TYPE_CHECKING, Any, Protocol

from stayledger.models import Resource, ResourceKind, User, UserRole

from .dynamodb import as_decimal, as_int

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class ResourceCatalog(Protocol):
    def get_resource(self, resource_id: str) -> Resource | None: ...

    def list_resources(self) -> list[Resource]: ...


class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> User | None: ...


class DynamoResourceCatalog:
    """Catalog lookups backed by the ``resources`` table."""

    TABLE = "resources"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get_resource(self, resource_id: str) -> Resource | None:
        """Get a resource by ID.

        Resources flagged inactive are reported as missing so they cannot be
        booked.

        Args:
            resource_id: Catalog identifier

        Returns:
            Resource or None if unknown or inactive
        """
        item = self.db.get_item(self.TABLE, {"resource_id": resource_id})
        if not item or item.get("active") is False:
            return None
        return self._item_to_resource(item)

    def list_resources(self) -> list[Resource]:
        """List active resources ordered by ID."""
        items = self.db.scan(self.TABLE)
        resources = [self._item_to_resource(i) for i in items if i.get("active") is not False]
        return sorted(resources, key=lambda r: r.resource_id)

    def _item_to_resource(self, item: dict[str, Any]) -> Resource:
        return Resource(
            resource_id=item["resource_id"],
            kind=ResourceKind(item.get("kind", ResourceKind.ROOM.value)),
            name=item.get("name", ""),
            capacity=as_int(item["capacity"]),
            unit_price=as_decimal(item["unit_price"]),
            currency=item.get("currency", "EUR"),
        )


class DynamoUserDirectory:
    """User lookups backed by the ``users`` table."""

    TABLE = "users"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        item = self.db.get_item(self.TABLE, {"user_id": user_id})
        if not item:
            return None
        return User(user_id=item["user_id"], role=UserRole(item.get("role", UserRole.CLIENT.value)))
