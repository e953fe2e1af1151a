"""Document sources and record stores used around the extraction core."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

from appraisal2json.errors import DocumentFetchError
from appraisal2json.models import ExtractedRecord, SourceCategory

logger = logging.getLogger(__name__)


class RecordQuery(BaseModel):
    """Filter criteria; unset fields match everything."""
    source: Optional[SourceCategory] = None
    page_index: Optional[int] = None
    committee: Optional[str] = None
    block: Optional[str] = None
    plot: Optional[str] = None
    actor: Optional[str] = None
    case_type: Optional[str] = None
    year: Optional[str] = None
    limit: Optional[int] = None

    def matches(self, record: ExtractedRecord) -> bool:
        if self.source is not None and record.source != self.source:
            return False
        if self.page_index is not None and record.page_index != self.page_index:
            return False
        for field in ("block", "plot", "year"):
            wanted = getattr(self, field)
            if wanted is not None and getattr(record, field) != wanted:
                return False
        # Free-text fields match on substring
        for field in ("committee", "actor", "case_type"):
            wanted = getattr(self, field)
            if wanted is not None and wanted not in (getattr(record, field) or ""):
                return False
        return True


class DocumentSource:
    """Provides raw listing-page markup for (source, page)."""

    def fetch_document(self, source: SourceCategory, page_index: int) -> str:
        """Return the page markup.

        Raises:
            DocumentFetchError: if the page cannot be provided
        """
        raise NotImplementedError


class DirectoryDocumentSource(DocumentSource):
    """Reads pages saved as ``<root>/<source>/<page_index>.html``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, source: SourceCategory, page_index: int) -> Path:
        return self.root / SourceCategory(source).value / f"{page_index}.html"

    def fetch_document(self, source: SourceCategory, page_index: int) -> str:
        path = self.path_for(source, page_index)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise DocumentFetchError(SourceCategory(source).value, page_index, str(e)) from e


class RecordStore:
    """Persistence keyed by record id."""

    def save(self, record: ExtractedRecord) -> bool:
        """Persist a record.

        Returns:
            True if stored, False if a record with the same id already exists
        """
        raise NotImplementedError

    def get_by_id(self, record_id: str) -> Optional[ExtractedRecord]:
        raise NotImplementedError

    def query(self, criteria: Optional[RecordQuery] = None) -> List[ExtractedRecord]:
        raise NotImplementedError


class InMemoryRecordStore(RecordStore):
    def __init__(self):
        self._records: Dict[str, ExtractedRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def save(self, record: ExtractedRecord) -> bool:
        if record.id in self._records:
            return False
        self._records[record.id] = record
        return True

    def get_by_id(self, record_id: str) -> Optional[ExtractedRecord]:
        return self._records.get(record_id)

    def query(self, criteria: Optional[RecordQuery] = None) -> List[ExtractedRecord]:
        criteria = criteria or RecordQuery()
        found = [r for r in self._records.values() if criteria.matches(r)]
        if criteria.limit is not None:
            found = found[:criteria.limit]
        return found


class JsonlRecordStore(InMemoryRecordStore):
    """In-memory index backed by an append-only JSON Lines file."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = ExtractedRecord.model_validate(json.loads(line))
                except ValueError as e:
                    logger.warning("Skipping unreadable line %d in %s: %s", line_no, self.path, e)
                    continue
                self._records.setdefault(record.id, record)
        logger.debug("Loaded %d records from %s", len(self._records), self.path)

    def save(self, record: ExtractedRecord) -> bool:
        if not super().save(record):
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n")
        return True
