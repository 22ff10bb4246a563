"""Utilities for loading call logs and contact directories from spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..directory import PhoneLookupColumns
from ..reconcile import CallLogColumns

PathLike = Union[str, Path]

_CALL_LOG_SYNONYMS: Mapping[str, Sequence[str]] = {
    CallLogColumns.NUMBER: ("number", "phone", "phone_number", "caller"),
    CallLogColumns.COUNTRY_ISO: ("countryiso", "country_iso", "country"),
    CallLogColumns.NAME: ("name", "cached_name"),
    CallLogColumns.NUMBER_TYPE: ("numbertype", "number_type", "cached_number_type"),
    CallLogColumns.LABEL: ("numberlabel", "number_label", "cached_number_label"),
    CallLogColumns.LOOKUP_URI: ("lookup_uri", "cached_lookup_uri"),
    CallLogColumns.MATCHED_NUMBER: ("matched_number", "cached_matched_number"),
    CallLogColumns.NORMALIZED_NUMBER: ("normalized_number", "cached_normalized_number"),
    CallLogColumns.PHOTO_ID: ("photo_id", "cached_photo_id"),
    CallLogColumns.PHOTO_URI: ("photo_uri", "cached_photo_uri"),
    CallLogColumns.FORMATTED_NUMBER: ("formatted_number", "cached_formatted_number"),
    CallLogColumns.ACCOUNT_COMPONENT: ("subscription_component_name", "account_component"),
    CallLogColumns.ACCOUNT_ID: ("subscription_id", "account_id"),
    CallLogColumns.PLUGIN_PACKAGE: ("plugin_package_name", "plugin_package"),
}

_CONTACT_SYNONYMS: Mapping[str, Sequence[str]] = {
    PhoneLookupColumns.ID: ("_id", "id", "contact_id"),
    PhoneLookupColumns.DISPLAY_NAME: ("display_name", "name", "full_name"),
    PhoneLookupColumns.TYPE: ("type", "phone_type"),
    PhoneLookupColumns.LABEL: ("label", "phone_label"),
    PhoneLookupColumns.NUMBER: ("number", "phone", "phone_number"),
    PhoneLookupColumns.NORMALIZED_NUMBER: ("normalized_number", "e164"),
    PhoneLookupColumns.PHOTO_ID: ("photo_id",),
    PhoneLookupColumns.LOOKUP_KEY: ("lookup", "lookup_key"),
    PhoneLookupColumns.PHOTO_URI: ("photo_uri",),
    "sip_address": ("sip_address", "sip"),
    "plugin_contact_id": ("plugin_contact_id",),
}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_call_log(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    """Load call log rows, renaming recognised headers to call log columns.

    Every cell is read as text so numbers keep their leading ``+`` and zeros.
    Unrecognised columns are kept unchanged.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    renames = _resolve_renames(dataframe.columns, _CALL_LOG_SYNONYMS, column_mapping or {})
    dataframe = dataframe.rename(columns=renames)
    keep = pd.Series([not _row_is_empty(row) for _, row in dataframe.iterrows()], index=dataframe.index, dtype=bool)
    return dataframe.loc[keep].reset_index(drop=True)


def load_contacts(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Load contact rows keyed by phone lookup column names.

    Parameters
    ----------
    path:
        Path to the CSV/XLSX file to be loaded.
    column_mapping:
        Optional mapping of phone lookup column names to spreadsheet headers.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for CSV files.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    renames = _resolve_renames(dataframe.columns, _CONTACT_SYNONYMS, column_mapping or {})
    wanted = set(_CONTACT_SYNONYMS)
    contacts: List[Dict[str, Any]] = []

    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        contact = {}
        for column, value in row.items():
            target = renames.get(column)
            text = _clean_text(value)
            if target in wanted and text is not None:
                contact[target] = text
        if contact:
            contacts.append(contact)
    return contacts


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    loader_kwargs.setdefault("dtype", str)
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=loader_kwargs.pop("engine", None) or "openpyxl", **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _resolve_renames(
    available_columns: Iterable[str],
    synonyms: Mapping[str, Sequence[str]],
    mapping: Mapping[str, str],
) -> Dict[str, str]:
    renames: Dict[str, str] = {}
    claimed = set()
    for target, column in mapping.items():
        renames[column] = target
        claimed.add(target)

    columns = [column for column in available_columns if column not in renames]
    normalised = {column: str(column).strip().lower().replace(" ", "_") for column in columns}

    # Headers that already carry a target name win over synonyms.
    for column in columns:
        target = normalised[column]
        if target in synonyms and target not in claimed:
            renames[column] = target
            claimed.add(target)

    for column in columns:
        if column in renames:
            continue
        for target, names in synonyms.items():
            if target not in claimed and normalised[column] in names:
                renames[column] = target
                claimed.add(target)
                break
    return renames


def _clean_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    text = str(value).strip()
    return text or None


__all__ = ["load_call_log", "load_contacts", "UnsupportedFileTypeError"]
