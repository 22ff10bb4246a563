"""Export utilities for annotated call logs and lookup outcomes."""
from __future__ import annotations

from pathlib import Path
from typing import MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import LookupOutcome

PathLike = Union[str, Path]

_OUTCOME_COLUMNS = [
    "number",
    "country_iso",
    "status",
    "name",
    "formatted_number",
    "source",
    "patched_columns",
    "rows_updated",
]


def write_call_log(
    dataframe: pd.DataFrame,
    path: PathLike,
    *,
    sheet_name: str = "CallLog",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write the (patched) call log back to a CSV or Excel file."""

    output_path = Path(path)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def outcomes_to_dataframe(outcomes: Sequence[LookupOutcome]) -> pd.DataFrame:
    """Convert lookup outcomes into a :class:`pandas.DataFrame`."""

    return pd.DataFrame([outcome.as_row() for outcome in outcomes], columns=_OUTCOME_COLUMNS)


def export_lookup_outcomes(
    outcomes: Sequence[LookupOutcome],
    path: PathLike,
    *,
    sheet_name: str = "Results",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write per-row lookup outcomes to a CSV or Excel file."""

    output_path = Path(path)
    _write_dataframe(outcomes_to_dataframe(outcomes), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["export_lookup_outcomes", "outcomes_to_dataframe", "write_call_log"]
