"""
Conversion history store.

Keeps one record per conversion with its status lifecycle
(pending -> processing -> completed | failed) and the extracted plain text,
persisted to a JSON file.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, asdict, fields
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Union

from .io import save_json, load_json

logger = logging.getLogger(__name__)

STATUSES = ("pending", "processing", "completed", "failed")
DEFAULT_LIMIT = 20


@dataclass
class ConversionRecord:
    """A single conversion entry."""
    id: str
    original_filename: str
    original_file_path: str = ""
    file_size: int = 0
    status: str = "pending"
    extracted_text: Optional[str] = None
    page_count: Optional[int] = None
    error_message: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversionRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class ConversionStore:
    """
    JSON-file-backed conversion history.

    The whole file is rewritten on every change; histories are short.
    All access goes through one lock so a store can be shared between
    sessions.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._records: Dict[str, ConversionRecord] = {}
        self._lock = threading.RLock()
        if self.path.exists():
            self._load()

    def _load(self):
        data = load_json(self.path)
        for item in data.get("conversions", []):
            record = ConversionRecord.from_dict(item)
            self._records[record.id] = record
        logger.debug(f"Loaded {len(self._records)} conversion records from {self.path}")

    def _save(self):
        # Caller holds the lock
        records = list(self._records.values())
        save_json({"conversions": [r.to_dict() for r in records]}, self.path)

    def create(self, filename: str, file_path: str = "", file_size: int = 0) -> ConversionRecord:
        record = ConversionRecord(
            id=str(uuid.uuid4()),
            original_filename=filename,
            original_file_path=file_path,
            file_size=file_size,
            status="pending",
            created_at=datetime.now().isoformat(),
        )
        with self._lock:
            self._records[record.id] = record
            self._save()
        return record

    def update(self, record_id: str, status: str, **changes) -> ConversionRecord:
        """
        Change a record's status and any of its text/page/error fields.

        Raises:
            KeyError: If no record has this id
            ValueError: If the status or a field name is unknown
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown conversion status: {status}")
        allowed = {"extracted_text", "page_count", "error_message"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        with self._lock:
            record = self._records[record_id]
            record.status = status
            for name, value in changes.items():
                setattr(record, name, value)
            self._save()
        return record

    def get(self, record_id: str) -> ConversionRecord:
        with self._lock:
            return self._records[record_id]

    def list_recent(
        self,
        ids: Optional[List[str]] = None,
        limit: int = DEFAULT_LIMIT
    ) -> List[ConversionRecord]:
        """Newest records first, optionally restricted to ``ids``."""
        # Insertion order breaks created_at ties
        with self._lock:
            ordered = list(enumerate(self._records.values()))
        if ids:
            wanted = set(ids)
            ordered = [(i, r) for i, r in ordered if r.id in wanted]
        ordered.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [r for _, r in ordered[:limit]]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
