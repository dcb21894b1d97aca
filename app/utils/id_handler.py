"""
ID Handler module for ObjectId formatting and human-readable business identifiers.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pymongo import ReturnDocument

from app.db.mongodb import get_counters_collection

logger = logging.getLogger(__name__)

REQUEST_ID_PREFIX = "REQ-"
REQUEST_ID_WIDTH = 4
SCAN_ID_PREFIX = "KITCHEN_CAN_"


class IdHandler:
    """
    Centralized service for identifiers.
    Converts MongoDB ObjectIds for API output and issues sequential business
    ids such as ``REQ-0001`` and ``KITCHEN_CAN_7``.
    """

    @staticmethod
    def format_object_ids(data: Union[Dict[str, Any], List[Dict[str, Any]], None]) -> Union[
        Dict[str, Any], List[Dict[str, Any]], None]:
        """
        Convert ObjectId to strings in a document or list of documents.
        Works recursively for nested dictionaries and lists.

        Args:
            data: MongoDB document or list of documents

        Returns:
            Document(s) with ObjectIds converted to strings
        """
        if data is None:
            return None

        if isinstance(data, list):
            return [IdHandler.format_object_ids(item) for item in data]
        if isinstance(data, dict):
            result = {}
            for key, value in data.items():
                if isinstance(value, ObjectId):
                    result[key] = str(value)
                elif isinstance(value, (dict, list)):
                    result[key] = IdHandler.format_object_ids(value)
                else:
                    result[key] = value
            return result
        return data

    @staticmethod
    def parse_suffix(identifier: Optional[str], prefix: str) -> int:
        """
        Parse the numeric counter at the end of a business id.

        Legacy rows may carry hand-entered ids, so anything that does not
        follow ``<prefix><digits>`` counts as 0 instead of raising.

        Args:
            identifier: Stored id, e.g. ``REQ-0042``
            prefix: Literal prefix, e.g. ``REQ-``

        Returns:
            The counter value, or 0 when it cannot be read
        """
        if not isinstance(identifier, str) or not identifier.startswith(prefix):
            return 0

        suffix = identifier[len(prefix):]
        if not suffix.isdigit():
            logger.debug(f"Ignoring non-numeric id suffix in {identifier!r}")
            return 0
        return int(suffix)

    @staticmethod
    def format_business_id(prefix: str, counter: int, width: int = 0) -> str:
        """
        Format a counter as a business id.

        Args:
            prefix: Literal prefix
            counter: Sequence value
            width: Zero-padded width of the counter, 0 for no padding

        Returns:
            Formatted id
        """
        return f"{prefix}{str(counter).zfill(width)}"

    @staticmethod
    async def next_business_id(collection, field: str, prefix: str, width: int = 0,
                               sequence: Optional[str] = None, counters=None) -> str:
        """
        Issue the next id for a collection.

        The most recently inserted record seeds a counter document, then the
        counter is bumped with an atomic ``$inc``. Concurrent callers each get
        a distinct value even though they read the same latest record.

        Args:
            collection: Collection holding the records that carry the id
            field: Field name of the id on those records
            prefix: Literal prefix of the id
            width: Zero-padded width of the counter
            sequence: Counter document key, defaults to ``field``
            counters: Counters collection, defaults to the shared one

        Returns:
            The new id
        """
        counters = counters if counters is not None else get_counters_collection()
        sequence = sequence or field

        latest = await collection.find(
            {field: {"$exists": True}}, sort=[("_id", -1)], limit=1
        ).to_list(length=1)
        seed = IdHandler.parse_suffix(latest[0].get(field), prefix) if latest else 0

        await counters.update_one({"_id": sequence}, {"$max": {"seq": seed}}, upsert=True)
        counter = await counters.find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return IdHandler.format_business_id(prefix, counter["seq"], width)
