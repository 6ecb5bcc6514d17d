from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, String, JSON

from models.base import Base, generate_id


class Region(Base):
    """
    Pricing/fulfillment region. Owned by the platform, read-only for the
    cart pricing core which only cares about its currency.
    """
    __tablename__ = "regions"

    id = Column(String, primary_key=True, default=lambda: generate_id("reg"))
    name = Column(String, nullable=False)
    currency_code = Column(String(3), nullable=False)   # Lowercase ISO code, e.g. "eur"
    countries = Column(JSON, nullable=False, default=list)   # Lowercase ISO-2 codes


class RegionDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str | None = None
    currency_code: str
    countries: list[str] = []
