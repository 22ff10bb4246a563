import pandas as pd
import pytest

from caller_lookup.ingestion.exporters import export_lookup_outcomes, outcomes_to_dataframe, write_call_log
from caller_lookup.models import LookupOutcome


def _build_sample_outcomes():
    return [
        LookupOutcome(
            number="+16502530000",
            country_iso="US",
            status="found",
            name="Alice",
            formatted_number="+1 650-253-0000",
            source="local",
            patched_columns=["formatted_number", "name"],
            rows_updated=2,
        ),
        LookupOutcome(number="+12025550143", country_iso=None, status="failed"),
    ]


def test_outcomes_to_dataframe_flattens_patched_columns():
    dataframe = outcomes_to_dataframe(_build_sample_outcomes())

    assert list(dataframe.columns) == [
        "number",
        "country_iso",
        "status",
        "name",
        "formatted_number",
        "source",
        "patched_columns",
        "rows_updated",
    ]
    first, second = dataframe.to_dict("records")
    assert first["patched_columns"] == "formatted_number, name"
    assert first["rows_updated"] == 2
    assert second["country_iso"] == ""
    assert second["status"] == "failed"


def test_outcomes_to_dataframe_without_outcomes():
    assert outcomes_to_dataframe([]).empty


def test_export_lookup_outcomes_to_csv_and_excel(tmp_path):
    outcomes = _build_sample_outcomes()

    csv_path = export_lookup_outcomes(outcomes, tmp_path / "out" / "results.csv")
    excel_path = export_lookup_outcomes(outcomes, tmp_path / "results.xlsx")

    csv_frame = pd.read_csv(csv_path, dtype=str)
    excel_frame = pd.read_excel(excel_path, sheet_name="Results", dtype=str)
    assert list(csv_frame["number"]) == ["+16502530000", "+12025550143"]
    assert list(excel_frame["status"]) == ["found", "failed"]


def test_write_call_log_round_trips(tmp_path):
    frame = pd.DataFrame([{"number": "+16502530000", "name": "Alice"}])

    path = write_call_log(frame, tmp_path / "calls.tsv")

    assert pd.read_csv(path, sep="\t", dtype=str).to_dict("records") == [{"number": "+16502530000", "name": "Alice"}]


def test_unsupported_export_extension(tmp_path):
    with pytest.raises(ValueError):
        write_call_log(pd.DataFrame(), tmp_path / "calls.json")
