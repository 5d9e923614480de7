from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from liftmatch.adapters.results_feed import read_result_rows

if TYPE_CHECKING:
    from pathlib import Path

HEADER = (
    "Lifter,Meet,Date,Age Category,Weight Class,Body Weight (Kg),"
    "Snatch Lift 1,Snatch Lift 2,Snatch Lift 3,C&J Lift 1,C&J Lift 2,C&J Lift 3,"
    "Best Snatch,Best C&J,Total,Member Id,Club\n"
)


def _write(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "results.csv"
    path.write_text(HEADER + "".join(lines), encoding="utf-8")
    return path


def test_read_result_rows_maps_sheet_columns(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "SMITH Jane,Spring Open,03/01/2024,Open Women's,63kg,61.5,70,-73,73,90,95,-98,73,95,168,1234,Iron Club\n",
    )

    feed = read_result_rows(path, meet_id="m-1")

    assert feed.errors == []
    [row] = feed.rows
    assert row.name == "SMITH Jane"
    assert row.meet_name == "Spring Open"
    assert row.meet_date == date(2024, 3, 1)
    assert row.snatch_lift_2 == -73.0
    assert row.total == 168.0
    assert row.stable_id == "1234"
    assert row.club_name == "Iron Club"


def test_read_result_rows_uses_meet_defaults_for_blank_cells(tmp_path: Path) -> None:
    path = _write(tmp_path, "Jane Smith,,,Open Women's,63kg,,,,,,,,,,,,\n")

    feed = read_result_rows(path, meet_id="m-1", meet_name="Club Meet", meet_date=date(2024, 5, 4))

    [row] = feed.rows
    assert row.meet_name == "Club Meet"
    assert row.meet_date == date(2024, 5, 4)
    assert row.bodyweight_kg is None
    assert row.stable_id is None


def test_read_result_rows_reports_bad_lines(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "Jane Smith,Spring Open,2024-03-01,Open Women's,63kg,61.5,,,,,,,,,170,,\n",
        ",Spring Open,2024-03-01,Open Women's,63kg,61.5,,,,,,,,,170,,\n",
        "Mary Lee,Spring Open,someday,Open Women's,63kg,58,,,,,,,,,150,,\n",
        "Ann Roe,Spring Open,,Open Women's,63kg,58,,,,,,,,,150,,\n",
    )

    feed = read_result_rows(path, meet_id="m-1")

    assert [row.name for row in feed.rows] == ["Jane Smith"]
    assert [error.line for error in feed.errors] == [3, 4, 5]
    assert feed.errors[2].message == "no meet date"
