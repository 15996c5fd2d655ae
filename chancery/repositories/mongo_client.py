"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    return get_database()[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Staff accounts (Account Store)
    accounts = db["staff_accounts"]
    accounts.create_index("staff_id", unique=True)
    accounts.create_index("email")
    accounts.create_index([
        ("role", ASCENDING),
        ("scope.diocese", ASCENDING),
        ("status", ASCENDING),
    ])
    accounts.create_index([
        ("scope.parish_id", ASCENDING),
        ("scope.position", ASCENDING),
        ("status", ASCENDING),
    ])
    accounts.create_index("registered_at", background=True)

    # Staff terms (Term Ledger)
    terms = db["staff_terms"]
    terms.create_index("term_id", unique=True)
    terms.create_index([("staff_id", ASCENDING), ("status", ASCENDING)])
    terms.create_index([("scope.diocese", ASCENDING), ("term_start", DESCENDING)])
    terms.create_index([("scope.parish_id", ASCENDING), ("term_start", DESCENDING)])

    # Audit events
    audit_events = db["audit_events"]
    audit_events.create_index("audit_event_id", unique=True)
    audit_events.create_index([("actor.staff_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_events.create_index([("resource_type", ASCENDING), ("resource_id", ASCENDING)])
    audit_events.create_index("timestamp", background=True)
    audit_events.create_index("correlation_id")

    # Seat markers; must exist before transactions write to them
    if "staff_seats" not in db.list_collection_names():
        db.create_collection("staff_seats")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
