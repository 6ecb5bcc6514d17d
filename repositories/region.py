from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.region import Region, RegionDTO


class RegionRepository:
    @staticmethod
    async def get_by_id(region_id: str, session: AsyncSession | Session) -> RegionDTO | None:
        stmt = select(Region).where(Region.id == region_id)
        region = await session_execute(stmt, session)
        region = region.scalar()
        if region is not None:
            return RegionDTO.model_validate(region, from_attributes=True)
        return None

    @staticmethod
    async def list_by_currency(currency_code: str, session: AsyncSession | Session) -> list[RegionDTO]:
        stmt = (
            select(Region)
            .where(func.lower(Region.currency_code) == currency_code.lower())
            .order_by(Region.name)
        )
        regions = await session_execute(stmt, session)
        return [RegionDTO.model_validate(region, from_attributes=True) for region in regions.scalars().all()]

    @staticmethod
    async def create(region_dto: RegionDTO, session: AsyncSession | Session) -> str:
        region = Region(**region_dto.model_dump())
        session.add(region)
        await session_flush(session)
        return region.id
