"""
Immutable captures of cart state taken before a cart mutation.

A CartSnapshot is built once per update request and never mutated; metadata
is deep-copied on capture so later edits of the live cart cannot leak into
the rollback copy (and vice versa).
"""

from pydantic import BaseModel, ConfigDict


class LineItemSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    quantity: int = 1
    unit_price: int | None = None
    metadata: dict = {}
    variant_id: str | None = None
    product_id: str | None = None
    product_title: str | None = None
    variant_title: str | None = None
    thumbnail: str | None = None


class AddressSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_1: str | None = None
    address_2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    province: str | None = None
    country_code: str | None = None
    phone: str | None = None


class CartSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    cart_id: str
    region_id: str | None = None
    currency_code: str | None = None
    items: tuple[LineItemSnapshot, ...] = ()
    shipping_address: AddressSnapshot | None = None

    def item(self, item_id: str) -> LineItemSnapshot | None:
        for snapshot in self.items:
            if snapshot.id == item_id:
                return snapshot
        return None


class RestoreError(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str | None = None
    error_type: str
    message: str


class RestoreResult(BaseModel):
    """
    Outcome of one best-effort restore step.

    Callers log failures and move on; a failed restore never replaces the
    status of the primary operation.
    """
    model_config = ConfigDict(frozen=True)

    item_id: str | None = None
    error: RestoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, item_id: str | None = None) -> "RestoreResult":
        return cls(item_id=item_id)

    @classmethod
    def failure(cls, item_id: str | None, exc: Exception) -> "RestoreResult":
        return cls(
            item_id=item_id,
            error=RestoreError(item_id=item_id, error_type=type(exc).__name__, message=str(exc))
        )


class ReconcileResultDTO(BaseModel):
    repriced_item_ids: list[str] = []
    naive_restored_item_ids: list[str] = []
    failures: list[RestoreResult] = []

    @property
    def changed(self) -> int:
        return len(self.repriced_item_ids) + len(self.naive_restored_item_ids)
