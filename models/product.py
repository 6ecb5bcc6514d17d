from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, String, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base, generate_id


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: generate_id("prod"))
    handle = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=False)
    subtitle = Column(String, nullable=True)
    thumbnail = Column(String, nullable=True)

    variants = relationship("ProductVariant", back_populates="product", lazy="selectin")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String, primary_key=True, default=lambda: generate_id("variant"))
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    title = Column(String, nullable=False)

    product = relationship("Product", back_populates="variants")


class VariantPrice(Base):
    """Catalog price of a variant in one currency (minor units)."""
    __tablename__ = "variant_prices"

    id = Column(Integer, primary_key=True)
    variant_id = Column(String, ForeignKey("product_variants.id"), nullable=False)
    currency_code = Column(String(3), nullable=False)
    amount = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("variant_id", "currency_code", name="uq_variant_price_currency"),
        CheckConstraint("amount >= 0", name="check_variant_price_non_negative"),
    )


class ProductVariantDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    title: str


class ProductDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    handle: str
    title: str
    subtitle: str | None = None
    thumbnail: str | None = None
    variants: list[ProductVariantDTO] = []
