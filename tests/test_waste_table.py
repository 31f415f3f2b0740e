import pytest

from roofiq.errors import InvalidMeasurementError
from roofiq.services.measurement import WASTE_PERCENTAGES, WasteTableGenerator, suggested_row
from roofiq.services.measurement.waste_table import squares_to_nearest_third


def test_percentages_in_report_order():
    rows = WasteTableGenerator().generate(1500)
    assert [r.waste_percent for r in rows] == [0, 1, 6, 11, 14, 16, 18, 21, 26]
    assert list(WASTE_PERCENTAGES) == [0, 1, 6, 11, 14, 16, 18, 21, 26]


def test_zero_area_gives_zero_rows():
    rows = WasteTableGenerator().generate(0)
    assert len(rows) == 9
    assert all(r.adjusted_area_square_feet == 0 for r in rows)
    assert all(r.squares == 0 for r in rows)


def test_suggested_row_for_1000_sq_ft():
    rows = WasteTableGenerator().generate(1000)
    row = suggested_row(rows)
    assert row is not None
    assert row.waste_percent == 16
    assert row.adjusted_area_square_feet == 1160
    assert row.is_suggested is True
    assert sum(r.is_suggested for r in rows) == 1


def test_squares_round_up_to_third():
    rows = {r.waste_percent: r for r in WasteTableGenerator().generate(1000)}
    assert rows[0].squares == 10
    assert rows[1].adjusted_area_square_feet == 1010
    assert rows[1].squares == pytest.approx(31 / 3)
    assert rows[16].squares == pytest.approx(35 / 3)
    assert rows[26].adjusted_area_square_feet == 1260
    assert rows[26].squares == pytest.approx(38 / 3)


def test_adjusted_area_rounds_half_up():
    # 50 * 1.01 = 50.5 -> 51
    rows = {r.waste_percent: r for r in WasteTableGenerator().generate(50)}
    assert rows[1].adjusted_area_square_feet == 51


def test_squares_helper():
    assert squares_to_nearest_third(0) == 0
    assert squares_to_nearest_third(100) == 1
    assert squares_to_nearest_third(101) == pytest.approx(4 / 3)


@pytest.mark.parametrize("bad", [-5, -0.01, float("nan"), float("inf"), "abc", None])
def test_invalid_base_area_rejected(bad):
    with pytest.raises(InvalidMeasurementError):
        WasteTableGenerator().generate(bad)
