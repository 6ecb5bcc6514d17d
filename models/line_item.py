from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, JSON, DateTime, func, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base, generate_id


class LineItem(Base):
    """
    Cart line item.

    Custom-priced items (is_custom_price=True) carry their own unit_price and
    keep the EUR price breakdown in metadata; catalog items are priced from
    their variant's price in the cart currency.
    """
    __tablename__ = "line_items"

    id = Column(String, primary_key=True, default=lambda: generate_id("cali"))
    cart_id = Column(String, ForeignKey("carts.id"), nullable=False)
    title = Column(String, nullable=False)
    subtitle = Column(String, nullable=True)
    thumbnail = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Integer, nullable=True)   # Minor units, cart currency
    is_custom_price = Column(Boolean, nullable=False, default=False)
    # None while detached from a custom item during a region change
    variant_id = Column(String, ForeignKey("product_variants.id"), nullable=True)
    product_id = Column(String, nullable=True)
    product_title = Column(String, nullable=True)
    variant_title = Column(String, nullable=True)
    sales_channel_id = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes, hence the attribute name
    item_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=func.now())

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_line_item_quantity_positive'),
    )


class LineItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str | None = None
    cart_id: str | None = None
    title: str
    subtitle: str | None = None
    thumbnail: str | None = None
    quantity: int | None = 1
    unit_price: int | None = None
    is_custom_price: bool = False
    variant_id: str | None = None
    product_id: str | None = None
    product_title: str | None = None
    variant_title: str | None = None
    sales_channel_id: str | None = None
    metadata: dict = Field(default_factory=dict, validation_alias=AliasChoices("item_metadata", "metadata"))
    created_at: datetime | None = None


class LineItemUpdateDTO(BaseModel):
    """Partial update of one line item; unset fields are left untouched."""
    id: str
    is_custom_price: bool | None = None
    variant_id: str | None = None
    unit_price: int | None = None
    metadata: dict | None = None
