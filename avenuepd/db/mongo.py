"""
MongoDB storage for Avenue PD.
"""

import copy
import uuid
from typing import Dict, List, Optional

from avenuepd.config import MongoDBConfig
from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import (
    ArrestDraft,
    ArrestReport,
    ChangeEvent,
    ChangeKind,
    Officer,
    PersistenceError,
    StatuteViolation,
    ValidationError,
)

logger = get_logger(__name__)

try:
    import pymongo
    from pymongo import ReturnDocument
    from pymongo.errors import DuplicateKeyError
    MONGODB_AVAILABLE = True
except ImportError:
    logger.warning("pymongo not installed. MongoDB storage will not be available.")
    MONGODB_AVAILABLE = False


def _check_available(cfg: MongoDBConfig) -> None:
    if not MONGODB_AVAILABLE:
        raise PersistenceError("pymongo not installed. Install with: pip install pymongo")

    if not cfg.enabled:
        raise PersistenceError("MongoDB storage is disabled in configuration")


class MongoStore(Store):
    """
    Store backed by MongoDB collections.

    Report numbers come from a counter document incremented atomically with
    find_one_and_update, so concurrent writers never share a number.
    """

    def __init__(self, cfg: MongoDBConfig, client=None):
        super().__init__()
        _check_available(cfg)
        self.cfg = cfg
        self.client = client if client is not None else pymongo.MongoClient(cfg.uri, retryWrites=True)
        self.db = self.client[cfg.database]
        self._kinds = {
            cfg.arrests_collection: ChangeKind.ARREST_REPORTS,
            cfg.officers_collection: ChangeKind.OFFICERS,
            cfg.statutes_collection: ChangeKind.STATUTES,
        }

    def next_report_number(self) -> int:
        """
        Reserve the next report number.

        Returns:
            The reserved number
        """
        counter = self.db[self.cfg.counter_collection].find_one_and_update(
            {"_id": self.cfg.arrests_collection},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    def release_report_number(self, number: int) -> bool:
        """
        Give back a reserved number whose insert failed.

        The counter only moves back if the number was never stored and nobody
        reserved a later number in the meantime; otherwise it stays unused.

        Args:
            number: Number returned by next_report_number

        Returns:
            Whether the number was given back
        """
        try:
            if self.db[self.cfg.arrests_collection].count_documents({"report_number": number}):
                logger.warning(f"Report number {number} was stored despite the insert error")
                return False

            result = self.db[self.cfg.counter_collection].update_one(
                {"_id": self.cfg.arrests_collection, "seq": number},
                {"$inc": {"seq": -1}},
            )
        except Exception as e:
            logger.error(f"Error releasing report number {number}: {e}")
            return False

        released = result.modified_count == 1
        if not released:
            logger.warning(f"Report number {number} left unused: a later number was already reserved")
        return released

    def create_arrest_report(self, draft: ArrestDraft) -> ArrestReport:
        try:
            number = self.next_report_number()
        except Exception as e:
            logger.error(f"Error reserving a report number: {e}")
            raise PersistenceError(f"Error reserving a report number: {e}") from e

        doc = to_mongodb_doc(draft, number)
        try:
            self.db[self.cfg.arrests_collection].insert_one(doc)
        except Exception as e:
            logger.error(f"Error creating arrest report: {e}")
            self.release_report_number(number)
            raise PersistenceError(f"Error creating arrest report: {e}") from e

        logger.info(f"Created arrest report #{number}")
        report = from_mongodb_doc(doc)
        self.notify(ChangeEvent(ChangeKind.ARREST_REPORTS, {"operation": "insert", "id": report["id"]}))
        return report

    def list_arrest_reports(self) -> List[ArrestReport]:
        try:
            cursor = self.db[self.cfg.arrests_collection].find({}).sort("report_number", pymongo.ASCENDING)
            return [from_mongodb_doc(doc) for doc in cursor]
        except Exception as e:
            logger.error(f"Error listing arrest reports: {e}")
            raise PersistenceError(f"Error listing arrest reports: {e}") from e

    def count_arrest_reports_by_officer(self, officer_id: str) -> int:
        try:
            return self.db[self.cfg.arrests_collection].count_documents({"officer.id_number": officer_id})
        except Exception as e:
            logger.error(f"Error counting arrest reports for {officer_id}: {e}")
            raise PersistenceError(f"Error counting arrest reports for {officer_id}: {e}") from e

    def list_officers(self) -> List[Officer]:
        return self._list(self.cfg.officers_collection)

    def save_officer(self, officer: Officer) -> Officer:
        saved = copy.deepcopy(officer)
        if not saved.get("id"):
            saved["id"] = uuid.uuid4().hex

        try:
            duplicate = self.db[self.cfg.officers_collection].find_one(
                {"id_number": saved.get("id_number"), "_id": {"$ne": saved["id"]}}
            )
        except Exception as e:
            logger.error(f"Error checking id number {saved.get('id_number')}: {e}")
            raise PersistenceError(f"Error checking id number {saved.get('id_number')}: {e}") from e
        if duplicate:
            raise ValidationError([f"Id number already registered: {saved.get('id_number')}"])

        self._upsert(self.cfg.officers_collection, saved)
        self.notify(ChangeEvent(ChangeKind.OFFICERS, {"operation": "upsert", "id": saved["id"]}))
        return saved

    def delete_officer(self, officer_id: str) -> None:
        self._delete(self.cfg.officers_collection, officer_id)
        self.notify(ChangeEvent(ChangeKind.OFFICERS, {"operation": "delete", "id": officer_id}))

    def list_statutes(self) -> List[StatuteViolation]:
        return self._list(self.cfg.statutes_collection)

    def save_statute(self, statute: StatuteViolation) -> StatuteViolation:
        self._upsert(self.cfg.statutes_collection, statute)
        self.notify(ChangeEvent(ChangeKind.STATUTES, {"operation": "upsert", "id": statute["id"]}))
        return copy.deepcopy(statute)

    def delete_statute(self, statute_id: str) -> None:
        self._delete(self.cfg.statutes_collection, statute_id)
        self.notify(ChangeEvent(ChangeKind.STATUTES, {"operation": "delete", "id": statute_id}))

    def watch_changes(self, max_events: Optional[int] = None) -> None:
        """
        Forward MongoDB change stream events to subscribers.

        Blocks until the stream closes or max_events events were delivered.
        Change streams need a replica set or a sharded cluster.

        Args:
            max_events: Stop after this many events
        """
        logger.info(f"Watching {self.cfg.database} for changes")
        delivered = 0
        try:
            with self.db.watch() as stream:
                for change in stream:
                    kind = self._kinds.get(change.get("ns", {}).get("coll"))
                    if kind is None:
                        continue

                    key = change.get("documentKey", {}).get("_id")
                    self.notify(ChangeEvent(kind, {
                        "operation": change.get("operationType"),
                        "id": str(key) if key is not None else None,
                    }))

                    delivered += 1
                    if max_events is not None and delivered >= max_events:
                        break
        except Exception as e:
            logger.error(f"Error watching for changes: {e}")
            raise PersistenceError(f"Error watching for changes: {e}") from e

    def _list(self, collection: str) -> List[Dict]:
        try:
            return [from_mongodb_doc(doc) for doc in self.db[collection].find({})]
        except Exception as e:
            logger.error(f"Error listing {collection}: {e}")
            raise PersistenceError(f"Error listing {collection}: {e}") from e

    def _upsert(self, collection: str, record: Dict) -> None:
        doc = {k: v for k, v in record.items() if k != "id"}
        try:
            self.db[collection].replace_one({"_id": record["id"]}, doc, upsert=True)
        except DuplicateKeyError as e:
            raise ValidationError([f"Duplicate entry in {collection}: {e}"]) from e
        except Exception as e:
            logger.error(f"Error saving to {collection}: {e}")
            raise PersistenceError(f"Error saving to {collection}: {e}") from e

    def _delete(self, collection: str, record_id: str) -> None:
        try:
            self.db[collection].delete_one({"_id": record_id})
        except Exception as e:
            logger.error(f"Error deleting {record_id} from {collection}: {e}")
            raise PersistenceError(f"Error deleting {record_id} from {collection}: {e}") from e


def to_mongodb_doc(draft: ArrestDraft, report_number: int) -> Dict:
    """
    Convert a draft to a MongoDB document.

    Args:
        draft: Arrest report without id and number
        report_number: Number reserved for the report

    Returns:
        MongoDB document
    """
    doc = copy.deepcopy(dict(draft))
    doc.pop("id", None)
    doc["_id"] = uuid.uuid4().hex
    doc["report_number"] = report_number
    return doc


def from_mongodb_doc(doc: Dict) -> Dict:
    """
    Convert a MongoDB document to a record, renaming _id to id.

    Args:
        doc: MongoDB document

    Returns:
        Record
    """
    record = {k: v for k, v in doc.items() if k != "_id"}
    if "_id" in doc:
        record["id"] = str(doc["_id"])
    return record


def setup_mongodb(cfg: MongoDBConfig) -> None:
    """
    Set up MongoDB collections and indexes.

    Args:
        cfg: MongoDB configuration
    """
    if not MONGODB_AVAILABLE:
        logger.warning("pymongo not installed. MongoDB setup not available.")
        return

    if not cfg.enabled:
        logger.warning("MongoDB storage is disabled in configuration")
        return

    logger.info("Setting up MongoDB collections and indexes")

    try:
        client = pymongo.MongoClient(cfg.uri)
        db = client[cfg.database]
        existing = db.list_collection_names()

        if cfg.arrests_collection not in existing:
            db.create_collection(
                cfg.arrests_collection,
                validator={
                    "$jsonSchema": {
                        "bsonType": "object",
                        "required": ["report_number", "accused", "officer", "violations",
                                     "totals", "reductions", "created_at"],
                        "properties": {
                            "report_number": {"bsonType": ["int", "long"], "minimum": 1},
                            "accused": {
                                "bsonType": "object",
                                "required": ["name", "id_number"],
                                "properties": {
                                    "name": {"bsonType": "string", "minLength": 1},
                                    "id_number": {"bsonType": "string", "pattern": "^[0-9]{1,12}$"},
                                },
                            },
                            "officer": {
                                "bsonType": "object",
                                "required": ["name", "id_number"],
                            },
                            "violations": {"bsonType": "array", "minItems": 1},
                            "totals": {
                                "bsonType": "object",
                                "required": ["fine_base", "sentence_base", "bail_total",
                                             "fine_final", "sentence_final"],
                            },
                            "reductions": {
                                "bsonType": "object",
                                "required": ["attorney_applied", "cooperation_applied"],
                                "properties": {
                                    "attorney_applied": {"bsonType": "bool"},
                                    "cooperation_applied": {"bsonType": "bool"},
                                },
                            },
                            "created_at": {"bsonType": "string"},
                        },
                    }
                },
                validationLevel="moderate",
            )

        arrests = db[cfg.arrests_collection]
        arrests.create_index([("report_number", pymongo.ASCENDING)], unique=True)
        arrests.create_index([("officer.id_number", pymongo.ASCENDING)])
        arrests.create_index([("created_at", pymongo.ASCENDING)])

        for name in (cfg.officers_collection, cfg.statutes_collection, cfg.counter_collection):
            if name not in existing:
                db.create_collection(name)

        db[cfg.officers_collection].create_index([("id_number", pymongo.ASCENDING)], unique=True)

        # Seed the sequence past any report already stored
        last = arrests.find_one({}, sort=[("report_number", pymongo.DESCENDING)])
        db[cfg.counter_collection].update_one(
            {"_id": cfg.arrests_collection},
            {"$max": {"seq": last["report_number"] if last else 0}},
            upsert=True,
        )

        logger.info("MongoDB setup complete")
    except Exception as e:
        logger.error(f"Error setting up MongoDB: {e}")
        raise PersistenceError(f"Error setting up MongoDB: {e}") from e
