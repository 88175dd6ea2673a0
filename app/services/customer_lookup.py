# app/services/customer_lookup.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.customer import Customer


class SqlCustomerLookup:
    """Customer existence check against the customers table."""

    async def exists(self, session: AsyncSession, customer_id: int) -> bool:
        row = await session.execute(select(Customer.id).where(Customer.id == int(customer_id)))
        return row.scalar_one_or_none() is not None
