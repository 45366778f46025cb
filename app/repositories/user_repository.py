# app/repositories/user_repository.py
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select

from app.core.enums import Role
from app.models.user import User, Address
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_active(self, user_id: str) -> Optional[User]:
        user = await self.get(user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def active_ids_with_roles(self, roles: Iterable[Role]) -> List[str]:
        stmt = (
            select(User.id)
            .where(User.role.in_(list(roles)), User.is_active.is_(True))
            .order_by(User.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def get_address(self, address_id: str) -> Optional[Address]:
        return await self.db.get(Address, address_id)
