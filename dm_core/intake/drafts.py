# backend/dm_core/intake/drafts.py
from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def storage_key(assessment_type: str) -> str:
    return f"{assessment_type.lower()}-assessment-drafts"


@dataclass
class Draft:
    id: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    auto_saved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data, "timestamp": self.timestamp, "autoSaved": self.auto_saved}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Draft":
        return cls(
            id=str(raw["id"]),
            data=dict(raw.get("data") or {}),
            timestamp=str(raw.get("timestamp") or ""),
            auto_saved=bool(raw.get("autoSaved", False)),
        )


class DraftStore:
    """
    Device local draft storage: one JSON file per assessment type holding
    `[{id, data, timestamp, autoSaved}, ...]`. Drafts never leave the device.
    """

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, assessment_type: str) -> Path:
        return self.directory / f"{storage_key(assessment_type)}.json"

    def _read(self, assessment_type: str) -> list[Draft]:
        path = self._path(assessment_type)
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError:
            logger.warning("draft file %s is corrupt; starting empty", path)
            return []
        return [Draft.from_dict(item) for item in raw if isinstance(item, dict) and "id" in item]

    def _write(self, assessment_type: str, drafts: list[Draft]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(assessment_type)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps([d.to_dict() for d in drafts], default=str), encoding="utf-8")
        os.replace(tmp, path)

    # -------------------------
    # Public API
    # -------------------------
    def list(self, assessment_type: str) -> list[Draft]:
        with self._lock:
            return self._read(assessment_type)

    def get(self, assessment_type: str, draft_id: str) -> Optional[Draft]:
        return next((d for d in self.list(assessment_type) if d.id == draft_id), None)

    def save(
        self,
        assessment_type: str,
        data: dict[str, Any],
        *,
        draft_id: str | None = None,
        auto_saved: bool = False,
    ) -> Draft:
        """
        Updates the draft with `draft_id` when it exists, otherwise inserts a new one.
        """
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            drafts = self._read(assessment_type)
            existing = next((d for d in drafts if draft_id and d.id == draft_id), None)
            if existing is not None:
                existing.data = dict(data)
                existing.timestamp = now
                existing.auto_saved = auto_saved
                draft = existing
            else:
                draft = Draft(id=draft_id or str(uuid.uuid4()), data=dict(data), timestamp=now, auto_saved=auto_saved)
                drafts.append(draft)
            self._write(assessment_type, drafts)

        logger.debug("draft %s saved (%s, auto=%s)", draft.id, assessment_type, auto_saved)
        return draft

    def delete(self, assessment_type: str, draft_id: str) -> bool:
        with self._lock:
            drafts = self._read(assessment_type)
            kept = [d for d in drafts if d.id != draft_id]
            if len(kept) == len(drafts):
                return False
            self._write(assessment_type, kept)
        return True
