"""
Central Airtable schema definitions and helpers.

This module keeps the canonical column names for the Conversations and Leads
tables together so the store adapters can import lightweight helpers instead
of hard-coding strings. Environment variables can still override individual
column names (to align with custom Airtable copies), but the defaults here
should always reflect the live base.

Answer columns are not declared here: each flow field is stored in a column
with the same name as the field (``Acreage``, ``Density`` ...).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Tuple


# ---------------------------------------------------------------------------
# Core data containers
# ---------------------------------------------------------------------------


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    v = value.strip()
    return v if v else None


@dataclass(frozen=True)
class FieldDefinition:
    """
    Represents an Airtable column.

    Args:
        default: Canonical field name in Airtable.
        env_vars: Ordered list of env vars that can override the field name
                  (first non-empty wins).
    """

    default: str
    env_vars: Tuple[str, ...] = field(default_factory=tuple)

    def resolve(self) -> str:
        """Return the active field name (env override or default)."""
        for env in self.env_vars:
            override = _clean(os.getenv(env))
            if override:
                return override
        return self.default


@dataclass(frozen=True)
class TableDefinition:
    """
    Airtable table metadata with helpers to resolve field names.

    Args:
        default: Human-readable table name in Airtable.
        env_vars: Env vars that can rename the table.
        fields: Mapping of logical keys → FieldDefinition.
    """

    default: str
    env_vars: Tuple[str, ...] = field(default_factory=tuple)
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)

    def name(self) -> str:
        for env in self.env_vars:
            override = _clean(os.getenv(env))
            if override:
                return override
        return self.default

    def field_name(self, key: str) -> str:
        return self.fields[key].resolve()

    def field_names(self) -> Dict[str, str]:
        return {key: f.resolve() for key, f in self.fields.items()}


# ---------------------------------------------------------------------------
# Table definitions
# ---------------------------------------------------------------------------

CONVERSATIONS_TABLE = TableDefinition(
    default="Conversations",
    env_vars=("CONVERSATIONS_TABLE",),
    fields={
        "SESSION_ID": FieldDefinition("Session ID", ("CONV_SESSION_ID_FIELD",)),
        "STEP": FieldDefinition("Step", ("CONV_STEP_FIELD",)),
        "LAST_QUESTION": FieldDefinition("Last Question", ("CONV_LAST_QUESTION_FIELD",)),
        "UPDATED_AT": FieldDefinition("Updated At", ("CONV_UPDATED_AT_FIELD",)),
    },
)

LEADS_TABLE = TableDefinition(
    default="Leads",
    env_vars=("LEADS_TABLE",),
    fields={
        "SESSION_ID": FieldDefinition("Session ID", ("LEAD_SESSION_ID_FIELD",)),
        "SOURCE": FieldDefinition("Source", ("LEAD_SOURCE_FIELD",)),
        "CREATED_AT": FieldDefinition("Created At", ("LEAD_CREATED_AT_FIELD",)),
    },
)


def conversations_field_map() -> Dict[str, str]:
    return CONVERSATIONS_TABLE.field_names()


def leads_field_map() -> Dict[str, str]:
    return LEADS_TABLE.field_names()


def escape_formula_value(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def match_formula(field_name: str, value: str) -> str:
    """Exact-match filterByFormula expression: ``{Field}='value'``."""
    return f"{{{field_name}}}='{escape_formula_value(value)}'"


__all__ = [
    "FieldDefinition",
    "TableDefinition",
    "CONVERSATIONS_TABLE",
    "LEADS_TABLE",
    "conversations_field_map",
    "leads_field_map",
    "escape_formula_value",
    "match_formula",
]
