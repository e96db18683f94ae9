import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)


def connect(settings: Settings) -> Optional[Database]:
    """Open the configured MongoDB database, or None when none is configured."""
    if not settings.database_url or not settings.database_name:
        return None
    client = MongoClient(settings.database_url)
    logger.info("connected to MongoDB database %s", settings.database_name)
    return client[settings.database_name]


def _to_document(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        # json mode turns Decimal and enums into BSON-safe values
        return data.model_dump(mode="json")
    return dict(data)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    doc = _to_document(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now.isoformat())
    doc["updated_at"] = now.isoformat()
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def update_document(db: Database, collection_name: str, filter_dict: Dict[str, Any], fields: Dict[str, Any]) -> int:
    fields = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
    result = db[collection_name].update_one(filter_dict, {"$set": fields})
    return result.modified_count


def get_documents(db: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    docs = []
    for d in cursor:
        d.pop("_id", None)
        docs.append(d)
    return docs
