from pydantic import BaseModel, ConfigDict, Field


class QtyBoundsDTO(BaseModel):
    min: int = 1
    max: int = 10


class PricingTableDTO(BaseModel):
    """
    EUR rule table for custom designs (data/pricing.json).

    sizes carry the base price, materials and colors carry surcharges.
    incompatible maps a material id to the color ids it cannot be combined with.
    """
    model_config = ConfigDict(frozen=True)

    currency: str = "EUR"
    sizes: dict[str, float]
    materials: dict[str, float]
    colors: dict[str, float]
    qty: QtyBoundsDTO = Field(default_factory=QtyBoundsDTO)
    incompatible: dict[str, list[str]] = Field(default_factory=dict)


class DesignSelectionDTO(BaseModel):
    size: str | None = None
    material: str | None = None
    color: str | None = None
    qty: int | None = None


class DesignAddRequestDTO(DesignSelectionDTO):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str | None = Field(default=None, alias="fileName")
    file_url: str | None = Field(default=None, alias="fileUrl")
    cart_id: str | None = Field(default=None, alias="cartId")


class DesignPriceRequestDTO(DesignSelectionDTO):
    model_config = ConfigDict(populate_by_name=True)

    cart_id: str | None = Field(default=None, alias="cartId")


class PriceBreakdownDTO(BaseModel):
    base_eur: float
    material_eur: float
    color_eur: float
    total_eur: float


class PriceResultDTO(BaseModel):
    """
    Price of one custom design in the target currency.

    Invariants: unit_price_minor == round(unit_price * 10^precision) and
    subtotal_minor == unit_price_minor * qty. The EUR breakdown is the
    source of truth, everything else is derived from it.
    """
    currency: str
    unit_price: float
    unit_price_minor: int
    subtotal: float
    subtotal_minor: int
    qty: int
    fx_rate: float
    breakdown: PriceBreakdownDTO


class SelectionValidationDTO(BaseModel):
    ok: bool
    reason: str | None = None
    field: str | None = None
