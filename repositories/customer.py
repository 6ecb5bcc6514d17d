from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.customer import Customer, CustomerDTO


class CustomerRepository:
    @staticmethod
    async def get_by_id(customer_id: str, session: AsyncSession | Session) -> CustomerDTO | None:
        stmt = select(Customer).where(Customer.id == customer_id)
        customer = await session_execute(stmt, session)
        customer = customer.scalar()
        if customer is not None:
            return CustomerDTO.model_validate(customer, from_attributes=True)
        return None

    @staticmethod
    async def list_by_email(email: str, session: AsyncSession | Session) -> list[CustomerDTO]:
        stmt = select(Customer).where(func.lower(Customer.email) == email.lower())
        customers = await session_execute(stmt, session)
        return [CustomerDTO.model_validate(customer, from_attributes=True)
                for customer in customers.scalars().all()]

    @staticmethod
    async def create(customer_dto: CustomerDTO, session: AsyncSession | Session) -> str:
        customer = Customer(**customer_dto.model_dump(exclude_none=True))
        session.add(customer)
        await session_flush(session)
        return customer.id
