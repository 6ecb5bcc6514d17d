from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, String, Boolean

from models.base import Base, generate_id


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=lambda: generate_id("cus"))
    email = Column(String, nullable=False, index=True)
    # Guest customers (has_account=False) are created implicitly when a cart email is set
    has_account = Column(Boolean, nullable=False, default=False)


class CustomerDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    email: str
    has_account: bool = False
