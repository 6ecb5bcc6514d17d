from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship

from models.base import Base, generate_id

# Fields carried across a region change. country_code/province are included
# here but never restored, they must follow the new region.
ADDRESS_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "company",
    "address_1",
    "address_2",
    "city",
    "postal_code",
    "province",
    "country_code",
    "phone",
)

REGION_BOUND_ADDRESS_FIELDS: frozenset[str] = frozenset({"country_code", "province"})


class CartShippingAddress(Base):
    __tablename__ = "cart_shipping_addresses"

    id = Column(String, primary_key=True, default=lambda: generate_id("caaddr"))
    cart_id = Column(String, ForeignKey("carts.id"), nullable=False, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    company = Column(String, nullable=True)
    address_1 = Column(String, nullable=True)
    address_2 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    province = Column(String, nullable=True)
    country_code = Column(String(2), nullable=True)
    phone = Column(String, nullable=True)

    cart = relationship("Cart", back_populates="shipping_address")


class AddressDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
