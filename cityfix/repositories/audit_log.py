"""
Audit log repository (append-only)
"""

from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from cityfix.core.errors import ErrorResponse
from cityfix.core.logger import logger
from cityfix.models.audit_log import AuditLog
from cityfix.repositories.sequences import SequenceGenerator


def _doc_to_log(doc: dict) -> AuditLog:
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return AuditLog(**doc)


class AuditLogRepository:
    """Audit rows are inserted, never updated or deleted"""

    def __init__(self, collection: AsyncIOMotorCollection, sequences: SequenceGenerator):
        self.collection = collection
        self.sequences = sequences

    async def create(self, entry: AuditLog) -> AuditLog:
        try:
            stored = entry.model_copy(update={"id": await self.sequences.next_id("audit_logs")})
            doc = stored.model_dump(exclude={"id"})
            doc["_id"] = stored.id
            await self.collection.insert_one(doc)
            return stored

        except PyMongoError as e:
            logger.error(f"MongoDB error saving audit log: {e}")
            raise ErrorResponse("Database error during audit log save", status_code=503)

    async def _find(self, query: dict, limit: int = 0) -> List[AuditLog]:
        try:
            cursor = self.collection.find(query).sort("created_at", DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit or None)
            return [_doc_to_log(doc) for doc in docs]

        except PyMongoError as e:
            logger.error(f"MongoDB error reading audit logs: {e}")
            raise ErrorResponse("Database error during audit log retrieval", status_code=503)

    async def find_recent(self, limit: int) -> List[AuditLog]:
        return await self._find({}, limit)

    async def find_by_user_id(self, user_id: int) -> List[AuditLog]:
        return await self._find({"user_id": user_id})

    async def find_by_event_type(self, event_type: str) -> List[AuditLog]:
        return await self._find({"event_type": event_type})

    async def find_by_date_range(self, start: datetime, end: datetime) -> List[AuditLog]:
        return await self._find({"created_at": {"$gte": start, "$lte": end}})
