"""
Classification history ledger
Append-only, size-capped log of classification records persisted as one JSON
blob in a key-value store, with queries, statistics and export/import
"""

import json
import logging
import threading
import time
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ..exceptions import LedgerWriteError
from ..models.detection import clamp_percent
from ..taxonomy import OutwardCategory
from .records import ClassificationRecord
from .statistics import ClassificationStats, compute_statistics
from .storage import JsonFileStore, KeyValueStore

HISTORY_KEY = "ecowaste-classification-history"
SESSION_KEY = "ecowaste-session-id"
MAX_RECORDS = 1000


class HistoryLedger:
    """
    Stores classification records, oldest first, evicting the oldest once the
    cap is exceeded

    Thread-safe: appends and replacements are serialized by one lock per
    ledger, so read-modify-write persistence cannot lose updates.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, data_dir: str = "data",
                 max_records: int = MAX_RECORDS,
                 clock: Optional[Callable[[], datetime]] = None,
                 session_id: Optional[str] = None):
        """
        Initialize history ledger

        Args:
            store: Key-value store for the serialized ledger, defaults to JSON files in data_dir
            data_dir: Directory for the default JSON file store
            max_records: Maximum number of records kept
            clock: Callable returning the current time, datetime.now by default
            session_id: Fixed session id, otherwise loaded from or created in the store
        """
        self.store = store if store is not None else JsonFileStore(data_dir)
        self.max_records = max_records
        self.clock = clock or datetime.now
        self.lock = threading.Lock()
        self.setup_logging()

        self.records: List[ClassificationRecord] = self._load_records()
        self.session_id = session_id or self._get_or_create_session_id()

        self.logger.info(f"History ledger initialized with {len(self.records)} records")

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def _get_or_create_session_id(self) -> str:
        stored = self.store.get(SESSION_KEY)
        if stored:
            return stored

        new_session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        try:
            self.store.set(SESSION_KEY, new_session_id)
        except LedgerWriteError as e:
            self.logger.warning(f"Failed to persist session id: {e}")
        return new_session_id

    def _load_records(self) -> List[ClassificationRecord]:
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            records = [ClassificationRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to load classification history: {e}")
            return []
        return records[-self.max_records:]

    def _persist(self, records: List[ClassificationRecord]):
        """Write the whole ledger; raises LedgerWriteError"""
        self.store.set(HISTORY_KEY, json.dumps([record.to_dict() for record in records]))

    def _generate_id(self) -> str:
        return f"class_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

    def save_classification(self, fields: Dict) -> ClassificationRecord:
        """
        Append a new record

        Args:
            fields: Record fields without id, timestamp and session_id

        Returns:
            The stored record. Persistence failures are logged, not raised.
        """
        record = ClassificationRecord(
            id=self._generate_id(),
            timestamp=self.clock(),
            filename=str(fields.get("filename", "")),
            file_size=int(fields.get("file_size", 0) or 0),
            item_name=str(fields["item_name"]),
            category=OutwardCategory(fields["category"]),
            confidence=clamp_percent(fields.get("confidence", 0)),
            recyclable_rate=clamp_percent(fields.get("recyclable_rate", 0)),
            points=max(0, int(fields.get("points", 0))),
            description=str(fields.get("description", "")),
            disposal_method=str(fields.get("disposal_method", "")),
            tips=tuple(fields.get("tips", ())),
            session_id=self.session_id,
        )

        with self.lock:
            self.records.append(record)
            overflow = len(self.records) - self.max_records
            if overflow > 0:
                del self.records[:overflow]
                self.logger.debug(f"Evicted {overflow} oldest records")

            try:
                self._persist(self.records)
                self.logger.info(f"Classification saved: {record.id} ({record.item_name})")
            except LedgerWriteError as e:
                self.logger.error(f"Failed to persist classification {record.id}: {e}")

        return record

    def record_classification(self, verdict, metadata) -> ClassificationRecord:
        """
        Save a verdict together with the upload it came from

        Args:
            verdict: ClassificationVerdict from the pipeline
            metadata: FileMetadata of the classified upload
        """
        return self.save_classification({
            "filename": metadata.filename,
            "file_size": metadata.file_size,
            "item_name": verdict.item_name,
            "category": verdict.category,
            "confidence": verdict.confidence,
            "recyclable_rate": verdict.recyclable_rate,
            "points": verdict.points,
            "description": verdict.description,
            "disposal_method": verdict.disposal_method,
            "tips": verdict.tips,
        })

    def get_all_records(self) -> List[ClassificationRecord]:
        """All records, most recent first"""
        with self.lock:
            return list(reversed(self.records))

    def get_records(self, page: int = 1, limit: int = 10) -> Dict:
        """Paginated records, most recent first"""
        all_records = self.get_all_records()
        start_index = max(0, (page - 1) * limit)
        end_index = start_index + limit
        return {
            "records": all_records[start_index:end_index],
            "total": len(all_records),
            "has_more": end_index < len(all_records),
        }

    def get_recent_records(self, days: int = 7) -> List[ClassificationRecord]:
        cutoff = self.clock() - timedelta(days=days)
        return [r for r in self.get_all_records() if r.timestamp >= cutoff]

    def get_records_by_category(self, category: OutwardCategory) -> List[ClassificationRecord]:
        category = OutwardCategory(category)
        return [r for r in self.get_all_records() if r.category == category]

    def search_records(self, query: str) -> List[ClassificationRecord]:
        """Case-insensitive substring search over item name, filename and description"""
        lower_query = (query or "").lower()
        return [
            r for r in self.get_all_records()
            if lower_query in r.item_name.lower()
            or lower_query in r.filename.lower()
            or lower_query in r.description.lower()
        ]

    def get_statistics(self) -> ClassificationStats:
        with self.lock:
            records = list(self.records)
        return compute_statistics(records, self.clock())

    def export_data(self) -> str:
        """Serialize the whole ledger and its statistics for backup"""
        data = {
            "exportDate": self.clock().isoformat(),
            "sessionId": self.session_id,
            "records": [record.to_dict() for record in self.get_all_records()],
            "statistics": self.get_statistics().to_dict(),
        }
        return json.dumps(data, indent=2)

    def import_data(self, json_data: str) -> bool:
        """
        Replace the whole ledger with exported data

        Returns:
            True on success; False on malformed data or a failed write, in
            which case the current ledger is left untouched
        """
        try:
            data = json.loads(json_data)
            raw_records = data["records"]
            if not isinstance(raw_records, list):
                raise ValueError("records must be a list")
            records = [ClassificationRecord.from_dict(item) for item in reversed(raw_records)]
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to import data: {e}")
            return False

        records.sort(key=lambda record: record.timestamp)
        records = records[-self.max_records:] if records else []

        with self.lock:
            try:
                self._persist(records)
            except LedgerWriteError as e:
                self.logger.error(f"Failed to persist imported data: {e}")
                return False
            self.records = records

        self.logger.info(f"Imported {len(records)} records")
        return True

    def clear_all_records(self) -> bool:
        with self.lock:
            try:
                self.store.delete(HISTORY_KEY)
            except LedgerWriteError as e:
                self.logger.error(f"Failed to clear history: {e}")
                return False
            self.records = []
        return True
