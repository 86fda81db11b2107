"""
Report repository for data access layer following Repository pattern
"""

from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from cityfix.core.errors import ErrorResponse
from cityfix.core.logger import logger
from cityfix.models.report import DEFAULT_PRIORITY, DEFAULT_STATUS, Report
from cityfix.repositories.sequences import SequenceGenerator
from cityfix.schemas.report import ReportCreate, ReportUpdate


def _doc_to_report(doc: dict) -> Report:
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return Report(**doc)


class ReportRepository:
    """Repository for report data access operations"""

    def __init__(self, collection: AsyncIOMotorCollection, sequences: SequenceGenerator):
        self.collection = collection
        self.sequences = sequences

    async def create(self, data: ReportCreate, user_id: int) -> Report:
        """Insert a new report owned by `user_id`"""
        try:
            now = datetime.now(timezone.utc)
            report = Report(
                id=await self.sequences.next_id("reports"),
                user_id=user_id,
                title=data.title,
                description=data.description,
                status=DEFAULT_STATUS,
                category=data.category,
                priority=data.priority or DEFAULT_PRIORITY,
                latitude=data.latitude,
                longitude=data.longitude,
                created_at=now,
                updated_at=now,
            )
            doc = report.model_dump(exclude={"id"})
            doc["_id"] = report.id
            await self.collection.insert_one(doc)
            return report

        except PyMongoError as e:
            logger.error(f"MongoDB error creating report: {e}")
            raise ErrorResponse("Database error during report creation", status_code=503)

    async def get_by_id(self, report_id: int) -> Optional[Report]:
        try:
            doc = await self.collection.find_one({"_id": report_id})
            return _doc_to_report(doc) if doc else None

        except PyMongoError as e:
            logger.error(f"MongoDB error getting report: {e}")
            raise ErrorResponse("Database error during report retrieval", status_code=503)

    async def list_all(self) -> List[Report]:
        try:
            cursor = self.collection.find({}).sort("created_at", DESCENDING)
            return [_doc_to_report(doc) for doc in await cursor.to_list(length=None)]

        except PyMongoError as e:
            logger.error(f"MongoDB error listing reports: {e}")
            raise ErrorResponse("Database error during report listing", status_code=503)

    async def update(self, report_id: int, data: ReportUpdate) -> Optional[Report]:
        """Apply only the fields that were set"""
        try:
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            changes["updated_at"] = datetime.now(timezone.utc)
            await self.collection.update_one({"_id": report_id}, {"$set": changes})
            return await self.get_by_id(report_id)

        except PyMongoError as e:
            logger.error(f"MongoDB error updating report: {e}")
            raise ErrorResponse("Database error during report update", status_code=503)

    async def delete(self, report_id: int) -> bool:
        try:
            result = await self.collection.delete_one({"_id": report_id})
            return result.deleted_count > 0

        except PyMongoError as e:
            logger.error(f"MongoDB error deleting report: {e}")
            raise ErrorResponse("Database error during report deletion", status_code=503)
