# A cart belongs to exactly one region at a time; its currency follows the region.
# Custom-priced line items must survive region changes with prices re-derived
# from their EUR breakdown (see services/region_reconciler.py).
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship

from models.base import Base, generate_id
from models.line_item import LineItemDTO
from models.shipping_address import AddressDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String, primary_key=True, default=lambda: generate_id("cart"))
    region_id = Column(String, ForeignKey("regions.id"), nullable=True)
    currency_code = Column(String(3), nullable=False, default="eur")
    email = Column(String, nullable=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True)
    sales_channel_id = Column(String, nullable=True)
    cart_metadata = Column("metadata", JSON, nullable=False, default=dict)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())

    items = relationship("LineItem", back_populates="cart", order_by="LineItem.created_at",
                         cascade="all, delete-orphan")
    shipping_address = relationship("CartShippingAddress", back_populates="cart", uselist=False,
                                    cascade="all, delete-orphan")


class CartDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    region_id: str | None = None
    currency_code: str = "eur"
    email: str | None = None
    customer_id: str | None = None
    sales_channel_id: str | None = None
    completed_at: datetime | None = None
    metadata: dict = Field(default_factory=dict, validation_alias=AliasChoices("cart_metadata", "metadata"))
    items: list[LineItemDTO] = []
    shipping_address: AddressDTO | None = None

    @property
    def custom_items(self) -> list[LineItemDTO]:
        return [item for item in self.items if item.is_custom_price]


class CartUpdateDTO(BaseModel):
    """
    Store cart update payload. Only fields explicitly sent are applied
    (use model_dump(exclude_unset=True)).
    """
    model_config = ConfigDict(extra="ignore")

    region_id: str | None = None
    email: str | None = None
    sales_channel_id: str | None = None
    shipping_address: AddressDTO | None = None
    metadata: dict | None = None
