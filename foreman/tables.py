# foreman/tables.py
"""
🏗️ Airtable Connection Manager
────────────────────────────────
Centralized table initialization for the Conversations and Leads tables.
Falls back to a process-local in-memory table when Airtable credentials are
missing (local dev) or FOREMAN_FORCE_IN_MEMORY is set (tests).
"""

from __future__ import annotations

import itertools
import re
from functools import lru_cache
from typing import Any, Dict, List

from pyairtable import Api

from foreman.config import settings
from foreman.runtime import get_logger, mask_env_value

logger = get_logger("tables")


# ---------------------------------------------------------------------------
# In-memory double
# ---------------------------------------------------------------------------
_FORMULA_PATTERN = re.compile(r"\{([^}]+)\}\s*=\s*'((?:[^'\\]|\\.)*)'")
_UNESCAPE = re.compile(r"\\(.)")


def _formula_match(record: Dict[str, Any], formula: str) -> bool:
    matches = _FORMULA_PATTERN.findall(formula)
    if not matches:
        return False
    fields = record.get("fields", {})
    for field_name, expected in matches:
        if str(fields.get(field_name)) != _UNESCAPE.sub(r"\1", expected):
            return False
    return True


class InMemoryTable:
    """Minimal Airtable drop-in replacement used for local runs and tests."""

    def __init__(self, name: str):
        self.name = name
        self._records: Dict[str, Dict[str, Any]] = {}
        self._sequence = itertools.count(1)

    def create(self, fields: Dict[str, Any]):
        record_id = f"rec_{next(self._sequence)}"
        record = {"id": record_id, "fields": dict(fields)}
        self._records[record_id] = record
        return {"id": record_id, "fields": dict(record["fields"])}

    def update(self, record_id: str, fields: Dict[str, Any]):
        if record_id not in self._records:
            raise KeyError(f"Unknown record id {record_id} in {self.name}")
        self._records[record_id]["fields"].update(fields)
        return {"id": record_id, "fields": dict(self._records[record_id]["fields"])}

    def get(self, record_id: str):
        rec = self._records.get(record_id)
        return {"id": rec["id"], "fields": dict(rec["fields"])} if rec else None

    def all(self, **kwargs) -> List[Dict[str, Any]]:
        records = [{"id": r["id"], "fields": dict(r["fields"])} for r in self._records.values()]
        formula = kwargs.get("formula")
        max_records = kwargs.get("max_records")
        if formula:
            records = [rec for rec in records if _formula_match(rec, formula)]
        if max_records is not None:
            records = records[: int(max_records)]
        return records


_MEMORY_TABLES: Dict[str, InMemoryTable] = {}


def memory_table(name: str) -> InMemoryTable:
    if name not in _MEMORY_TABLES:
        _MEMORY_TABLES[name] = InMemoryTable(name)
    return _MEMORY_TABLES[name]


# ---------------------------------------------------------------------------
# Core Table Factory
# ---------------------------------------------------------------------------
def use_in_memory() -> bool:
    s = settings()
    return s.FORCE_IN_MEMORY or not s.airtable_configured


@lru_cache(maxsize=1)
def _api() -> Api:
    return Api(settings().AIRTABLE_API_KEY)


@lru_cache(maxsize=None)
def get_table(table_name: str) -> Any:
    """
    Return a pyairtable Table for the configured base, or the shared
    in-memory table of the same name when Airtable is not configured.
    """
    if use_in_memory():
        logger.info(f"🧪 Using in-memory table for '{table_name}'")
        return memory_table(table_name)
    return _api().table(settings().AIRTABLE_BASE_ID, table_name)


def get_convos() -> Any:
    return get_table(settings().CONVERSATIONS_TABLE)


def get_leads() -> Any:
    return get_table(settings().LEADS_TABLE)


def reset_tables() -> None:
    """Drop cached clients and in-memory rows (tests, config reloads)."""
    get_table.cache_clear()
    _api.cache_clear()
    _MEMORY_TABLES.clear()


# ---------------------------------------------------------------------------
# Telemetry Utilities
# ---------------------------------------------------------------------------
def summary() -> Dict[str, Any]:
    """Return a snapshot of the resolved Airtable connection."""
    s = settings()
    return {
        "backend": "memory" if use_in_memory() else "airtable",
        "base": s.AIRTABLE_BASE_ID or "<missing>",
        "key": mask_env_value(s.AIRTABLE_API_KEY),
        "conversations_table": s.CONVERSATIONS_TABLE,
        "leads_table": s.LEADS_TABLE,
    }
