"""
Turn normalized tabular rows and the agent roster into engine inputs.

Rows are expected to come out of the upstream normalizer already mapped to
``firstName`` / ``phone`` / ``notes``; here we only enforce the record-level
constraints and collect per-row errors instead of aborting the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
import yaml

from .agent import Agent
from .errors import InvalidRecord
from .record import RecordInput

logger = logging.getLogger(__name__)

# canonical column → accepted spellings
COLUMN_ALIASES = {
    "firstName": ("firstName", "first_name", "FirstName", "First Name"),
    "phone": ("phone", "Phone"),
    "notes": ("notes", "Notes"),
}


@dataclass
class RowError:
    row: int
    column: str
    error: str
    value: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "column": self.column, "error": self.error, "value": self.value}


@dataclass
class LoadedRecords:
    records: List[RecordInput] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)

    @property
    def skipped_rows(self) -> int:
        return len({e.row for e in self.errors})

    def metadata(self) -> Dict[str, Any]:
        return {
            "validationErrors": [e.to_dict() for e in self.errors],
            "skippedRows": self.skipped_rows,
        }


def _canonical_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        found = next((c for c in aliases if c in df.columns), None)
        if found is not None and found != canonical:
            rename[found] = canonical
    df = df.rename(columns=rename)
    missing = [c for c in ("firstName", "phone") if c not in df.columns]
    if missing:
        raise KeyError(f"Record rows missing columns: {missing}")
    if "notes" not in df.columns:
        df["notes"] = ""
    return df


def _error_column(message: str) -> str:
    lowered = message.lower()
    if "phone" in lowered:
        return "phone"
    if "notes" in lowered:
        return "notes"
    return "firstName"


def records_from_rows(rows: Iterable[Mapping[str, Any]]) -> LoadedRecords:
    """Validate already-normalized rows; invalid rows are reported and skipped."""

    out = LoadedRecords()
    # Row numbers are 1-based to match what a user sees in a spreadsheet.
    for idx, row in enumerate(rows, start=1):
        try:
            out.records.append(RecordInput.from_mapping(row))
        except InvalidRecord as exc:
            column = _error_column(str(exc))
            raw = row.get(column, row.get("first_name") if column == "firstName" else None)
            out.errors.append(
                RowError(row=idx, column=column, error=str(exc), value="" if raw is None else str(raw))
            )
    if out.errors:
        logger.warning("Skipped %d invalid row(s) out of %d", out.skipped_rows, out.skipped_rows + len(out.records))
    return out


def records_from_frame(df: pd.DataFrame) -> LoadedRecords:
    """Same as :func:`records_from_rows` for a DataFrame of normalized rows."""

    df = _canonical_columns(df)
    # NaN in an optional column means "empty"
    df = df.astype(object).where(df.notna(), None)
    return records_from_rows(df.to_dict(orient="records"))


def read_records_csv(path: Path) -> LoadedRecords:
    """Load a normalized CSV export; phone numbers are kept as text."""

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    logger.info("Loaded %d rows from %s", len(df), path.name)
    return records_from_frame(df)


def load_agents(path: Path) -> List[Agent]:
    """Read the ``agents:`` list of a roster YAML file."""

    raw = yaml.safe_load(Path(path).read_text()) or {}
    agents = [Agent.from_mapping(a) for a in raw.get("agents", [])]
    logger.info("Loaded %d agent profiles (%d active)", len(agents), sum(a.is_active for a in agents))
    return agents
