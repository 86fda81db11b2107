"""
User repository
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from cityfix.core.errors import ErrorResponse
from cityfix.core.logger import logger
from cityfix.models.user import User
from cityfix.repositories.sequences import SequenceGenerator


def _doc_to_user(doc: dict) -> User:
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return User(**doc)


def _user_to_doc(user: User) -> dict:
    doc = user.model_dump(exclude={"id"})
    doc["_id"] = user.id
    return doc


class UserRepository:
    """Repository for user data access operations"""

    def __init__(self, collection: AsyncIOMotorCollection, sequences: SequenceGenerator):
        self.collection = collection
        self.sequences = sequences

    async def next_id(self) -> int:
        return await self.sequences.next_id("users")

    async def get_by_id(self, user_id: int) -> Optional[User]:
        try:
            doc = await self.collection.find_one({"_id": user_id})
            return _doc_to_user(doc) if doc else None

        except PyMongoError as e:
            logger.error(f"MongoDB error getting user: {e}")
            raise ErrorResponse("Database error during user retrieval", status_code=503)

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            doc = await self.collection.find_one({"username": username})
            return _doc_to_user(doc) if doc else None

        except PyMongoError as e:
            logger.error(f"MongoDB error getting user by username: {e}")
            raise ErrorResponse("Database error during user retrieval", status_code=503)

    async def exists_by_username(self, username: str) -> bool:
        try:
            return await self.collection.count_documents({"username": username}, limit=1) > 0

        except PyMongoError as e:
            logger.error(f"MongoDB error checking username: {e}")
            raise ErrorResponse("Database error during user lookup", status_code=503)

    async def exists_by_email(self, email: str) -> bool:
        try:
            return await self.collection.count_documents({"email": email}, limit=1) > 0

        except PyMongoError as e:
            logger.error(f"MongoDB error checking email: {e}")
            raise ErrorResponse("Database error during user lookup", status_code=503)

    async def create(self, user: User) -> User:
        try:
            await self.collection.insert_one(_user_to_doc(user))
            return user

        except PyMongoError as e:
            logger.error(f"MongoDB error creating user: {e}")
            raise ErrorResponse("Database error during user creation", status_code=503)

    async def update_fields(self, user_id: int, changes: dict) -> Optional[User]:
        """
        Set only the given fields and return the stored user afterwards.
        Fields not named in `changes` keep whatever value is stored, so a
        profile edit and a counter increment never overwrite each other.
        """
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": user_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
            return _doc_to_user(doc) if doc else None

        except PyMongoError as e:
            logger.error(f"MongoDB error updating user: {e}")
            raise ErrorResponse("Database error during user update", status_code=503)
