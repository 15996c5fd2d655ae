"""Audit Repository - Data access for audit events"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import DESCENDING

from .mongo_client import get_database
from ..domain.models import AuditEvent
from ..domain.enums import ResourceType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit event operations (append-only)"""

    def __init__(self, database: Optional[Database] = None):
        db = database if database is not None else get_database()
        self._audit_events: Collection = db["audit_events"]

    def create_event(self, event: AuditEvent) -> AuditEvent:
        """Create an audit event (append-only)"""
        doc = event.model_dump()
        doc["_id"] = event.audit_event_id

        self._audit_events.insert_one(doc)
        logger.info(
            f"Created audit event: {event.action.value}",
            extra={
                "staff_id": event.resource_id,
                "actor_id": event.actor.staff_id,
                "action": event.action.value
            }
        )
        return event

    def get_events_for_actor(
        self,
        staff_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100
    ) -> List[AuditEvent]:
        """Get events performed by a staff member, newest first"""
        query = self._actor_window(staff_id, since, until)
        cursor = self._audit_events.find(query).sort("timestamp", DESCENDING).limit(limit)
        return [self._to_event(doc) for doc in cursor]

    def get_events_for_resource(
        self,
        resource_type: ResourceType,
        resource_id: str,
        limit: int = 100
    ) -> List[AuditEvent]:
        """Get all events recorded against a resource, newest first"""
        cursor = self._audit_events.find(
            {"resource_type": resource_type.value, "resource_id": resource_id}
        ).sort("timestamp", DESCENDING).limit(limit)
        return [self._to_event(doc) for doc in cursor]

    def count_actions_for_actor(
        self,
        staff_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Aggregate action counts for an actor over a time window.

        Returns:
            {"breakdown": {action: count}, "last_action_at": datetime | None}
        """
        pipeline = [
            {"$match": self._actor_window(staff_id, since, until)},
            {"$group": {
                "_id": "$action",
                "count": {"$sum": 1},
                "last": {"$max": "$timestamp"},
            }},
        ]
        breakdown: Dict[str, int] = {}
        last_action_at: Optional[datetime] = None
        for row in self._audit_events.aggregate(pipeline):
            breakdown[row["_id"]] = row["count"]
            if last_action_at is None or row["last"] > last_action_at:
                last_action_at = row["last"]
        return {"breakdown": breakdown, "last_action_at": last_action_at}

    @staticmethod
    def _actor_window(
        staff_id: str,
        since: Optional[datetime],
        until: Optional[datetime]
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {"actor.staff_id": staff_id}
        window: Dict[str, Any] = {}
        if since:
            window["$gte"] = since
        if until:
            window["$lte"] = until
        if window:
            query["timestamp"] = window
        return query

    @staticmethod
    def _to_event(doc: Dict[str, Any]) -> AuditEvent:
        doc.pop("_id", None)
        return AuditEvent.model_validate(doc)
