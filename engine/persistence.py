"""
engine/persistence.py — Storage seam for presentations and slide rows.

The pipeline only needs insert / update / select / delete by id; anything
that satisfies ``PresentationStore`` can back it.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, Optional, Protocol

from engine.pipeline_logger import PipelineLogger

PRESENTATIONS = "presentations"
SLIDES = "slides"


class PresentationStore(Protocol):
    async def insert(self, table: str, row: Dict[str, Any]) -> str: ...

    async def update(self, table: str, row_id: str, fields: Dict[str, Any]) -> None: ...

    async def select(self, table: str, row_id: str) -> Optional[Dict[str, Any]]: ...

    async def delete(self, table: str, row_id: str) -> None: ...


class InMemoryPresentationStore:
    """Dict-backed store for local runs and tests. Rows are copied in and out."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._log = PipelineLogger("MemoryStore")

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        row_id = str(uuid.uuid4())
        self.tables.setdefault(table, {})[row_id] = {**copy.deepcopy(row), "id": row_id}
        self._log.debug(f"insert {table}/{row_id}")
        return row_id

    async def update(self, table: str, row_id: str, fields: Dict[str, Any]) -> None:
        rows = self.tables.get(table, {})
        if row_id not in rows:
            raise KeyError(f"{table}/{row_id} does not exist")
        rows[row_id].update(copy.deepcopy(fields))

    async def select(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        row = self.tables.get(table, {}).get(row_id)
        return copy.deepcopy(row) if row is not None else None

    async def delete(self, table: str, row_id: str) -> None:
        self.tables.get(table, {}).pop(row_id, None)
        self._log.debug(f"delete {table}/{row_id}")

    def rows(self, table: str) -> list:
        return [copy.deepcopy(r) for r in self.tables.get(table, {}).values()]
