# app/domain/repositories/profile_repo.py

from __future__ import annotations
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.product import UserProfile


class ProfileRepo:
    """
    Read-only access to user profiles stored by the onboarding flow.
    Documents are camelCase and keyed by `userId`.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "userProfiles"):
        self.col = db[collection_name]

    async def get_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        doc = await self.col.find_one({"userId": user_id}, {"_id": 0})
        return UserProfile.model_validate(doc) if doc else None
