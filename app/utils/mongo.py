# app/utils/mongo.py
from __future__ import annotations

import logging
import os
from typing import Tuple

import certifi
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, TEXT

# ✅ Load environment variables from .env
load_dotenv()

logger = logging.getLogger("employee_search.mongo")

DEFAULT_COLLECTION = "employees"


def _mongo_settings() -> Tuple[str, str, str]:
    uri = os.getenv("MONGODB_URI")
    db_name = os.getenv("MONGO_DB_NAME")
    if not uri:
        raise RuntimeError("MONGODB_URI not set in .env")
    if not db_name:
        raise RuntimeError("MONGO_DB_NAME not set in .env")
    return uri, db_name, os.getenv("EMPLOYEES_COLLECTION", DEFAULT_COLLECTION)


def create_mongo_client() -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection]:
    """
    Build the client once per process. Returns (client, db, employees collection).
    """
    uri, db_name, collection = _mongo_settings()
    kwargs = {}
    # Atlas (mongodb+srv / tls=true) needs a CA bundle; local mongod does not
    if uri.startswith("mongodb+srv://") or "tls=true" in uri.lower():
        kwargs["tlsCAFile"] = certifi.where()
    client = AsyncIOMotorClient(uri, **kwargs)
    db = client[db_name]
    return client, db, db[collection]


async def verify_mongo_connection(db: AsyncIOMotorDatabase) -> None:
    """Called at app startup; storage being down is fatal."""
    try:
        collections = await db.list_collection_names()
    except Exception as e:
        logger.error("mongo_connect_failed", extra={"error": str(e)})
        raise
    logger.info("mongo_connected", extra={"database": db.name, "collections": collections})


async def ensure_employee_indexes(collection: AsyncIOMotorCollection) -> None:
    """
    Text index over the searchable fields plus (location, experience) for the
    common filter shape. Safe to call multiple times.
    """
    await collection.create_index(
        [("name", TEXT), ("role", TEXT), ("location", TEXT), ("skills", TEXT)],
        name="employee_text",
    )
    await collection.create_index(
        [("location", ASCENDING), ("experience", ASCENDING)],
        name="location_experience",
    )
