"""
Integer id sequences backed by a counters collection
"""

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument


class SequenceGenerator:
    """Atomically hands out increasing integer ids per sequence name"""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def next_id(self, name: str) -> int:
        doc = await self.collection.find_one_and_update(
            {"_id": name},
            {"$inc": {"value": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["value"])
