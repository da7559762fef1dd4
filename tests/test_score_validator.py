"""Tests for score table validation and loading."""

import csv

import pytest
from conftest import build_score_rows

from performance_grader.errors import ScoreAutoRepaired, ScoreStructureError
from performance_grader.score import (
    EXPECTED_HEADERS,
    ScoreTable,
    check_headers,
    load_score,
    parse_duration,
    read_score_table,
    validate_score,
    write_score_table,
)
from performance_grader.score.table import column_letter


def table_from(rows) -> ScoreTable:
    return ScoreTable.from_rows(rows)


class TestValidScore:
    def test_entries_are_parsed(self, make_table):
        """A well-formed table yields one typed entry per numbered row."""
        score = validate_score(make_table(["c4", "D4#", "E4"], durations=["1/4", "0.5", "3/8"]))

        assert len(score) == 3
        assert [entry.pitch for entry in score.entries] == ["C4", "D4#", "E4"]
        assert [entry.duration for entry in score.entries] == [0.25, 0.5, 0.375]
        assert [entry.line_number for entry in score.entries] == [1, 2, 3]
        assert score.graph_width == 800
        assert score.velocity_graph_width == 600
        assert score.x_axis_limit == 20

    def test_flags_are_parsed_case_insensitively(self):
        rows = build_score_rows(["C4", "D4"])
        rows[1][3:8] = ["y", "n", "Y", "n", "N"]
        score = validate_score(table_from(rows))

        first = score.entries[0]
        assert first.include is True
        assert first.include_tone_lengthening is False
        assert first.include_dynamics is True
        assert first.include_articulation is False
        assert first.include_note_duration is False

    def test_rows_after_end_are_ignored(self):
        rows = build_score_rows(["C4", "D4"])
        rows.append(["junk", "Q9", "x"])
        score = validate_score(table_from(rows))
        assert len(score) == 2

    def test_end_is_case_insensitive(self):
        rows = build_score_rows(["C4"])
        rows[-1] = ["  End "]
        assert len(validate_score(table_from(rows))) == 1

    def test_sentinel_row_and_line_lookup(self, make_score):
        score = make_score(["C4", "D4"])

        assert score.row(2).is_sentinel
        assert not score.row(1).is_sentinel
        assert [row.is_sentinel for row in score.rows()] == [False, False, True]
        assert score.entry_for_line(2).pitch == "D4"
        with pytest.raises(KeyError):
            score.entry_for_line(3)


class TestHeaders:
    def test_correct_headers(self, make_table):
        assert check_headers(make_table()) == []

    def test_every_bad_header_is_reported(self):
        """All mismatching header cells are listed, not just the first."""
        rows = build_score_rows(["C4"])
        rows[0][1] = "Pitch"
        rows[0][9] = "Width"
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        assert excinfo.value.bad_headers == ["Pitch", "Width"]
        assert excinfo.value.row == 1
        assert "-Pitch" in str(excinfo.value)
        assert "-Width" in str(excinfo.value)

    def test_missing_header_cells(self):
        rows = build_score_rows(["C4"])
        rows[0] = rows[0][:10]
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))
        assert excinfo.value.bad_headers == ["", ""]

    def test_header_cells_are_trimmed(self):
        rows = build_score_rows(["C4"])
        rows[0][0] = "  Line number "
        assert check_headers(table_from(rows)) == []

    def test_empty_table(self):
        with pytest.raises(ScoreStructureError):
            validate_score(table_from([]))


class TestLineNumbers:
    @pytest.mark.parametrize("value", ["0", "3", "-1", "1.0", "one", ""])
    def test_bad_line_number(self, value):
        rows = build_score_rows(["C4", "D4", "E4"])
        rows[2][0] = value
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        assert excinfo.value.row == 3
        assert excinfo.value.column == "Line number"

    def test_missing_end(self):
        rows = build_score_rows(["C4", "D4"])[:-1]
        with pytest.raises(ScoreStructureError, match="No END row"):
            validate_score(table_from(rows))

    def test_no_notes(self):
        rows = [list(EXPECTED_HEADERS), ["END"]]
        with pytest.raises(ScoreStructureError, match="no notes") as excinfo:
            validate_score(table_from(rows))
        assert excinfo.value.row == 2


class TestCellContents:
    @pytest.mark.parametrize("note", ["H4", "C8", "C", "4C", "Cb4", "C#", "C#4", "C4##", ""])
    def test_bad_note(self, note):
        rows = build_score_rows(["C4", "D4"])
        rows[2][1] = note
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        assert excinfo.value.row == 3
        assert excinfo.value.column == "Note"

    @pytest.mark.parametrize("duration", ["0", "1/0", "0/4", "-0.25", "a/b", "", "quarter", "inf"])
    def test_bad_duration(self, duration):
        rows = build_score_rows(["C4", "D4"])
        rows[1][2] = duration
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        assert excinfo.value.row == 2
        assert excinfo.value.column == "Duration"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("0.25", 0.25), ("1/4", 0.25), ("3 / 8", 0.375), ("2", 2.0)],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == pytest.approx(expected)

    @pytest.mark.parametrize(
        ("col", "ordinal"),
        [(3, "first"), (4, "second"), (5, "third"), (6, "fourth"), (7, "fifth")],
    )
    def test_bad_include_flag(self, col, ordinal):
        """The message names the include column by ordinal and letter."""
        rows = build_score_rows(["C4", "D4"])
        rows[1][col] = "maybe"
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        message = str(excinfo.value)
        assert f"{ordinal} Include column" in message
        assert f"(Column {column_letter(col)})" in message
        assert excinfo.value.row == 2

    @pytest.mark.parametrize("spacing", ["0", "-1", "x", ""])
    def test_bad_spacing(self, spacing):
        rows = build_score_rows(["C4", "D4"])
        rows[2][8] = spacing
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))
        assert excinfo.value.column == "Space for barline"

    def test_fractional_spacing_is_accepted(self):
        rows = build_score_rows(["C4", "D4"])
        rows[1][8] = "2.5"
        assert validate_score(table_from(rows)).entries[0].barline_spacing == 2.5

    @pytest.mark.parametrize(
        ("position", "column"),
        [(0, "Graph Width"), (1, "Vel. Graph Width"), (2, "X-axis limit")],
    )
    @pytest.mark.parametrize("value", ["0", "1.5", "-3", "", "wide"])
    def test_bad_graph_value(self, position, column, value):
        graph_values = ["800", "600", "20"]
        graph_values[position] = value
        rows = build_score_rows(["C4", "D4"], graph_values=graph_values)
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))

        assert excinfo.value.column == column
        assert excinfo.value.row == 2

    def test_graph_values_below_first_row_are_ignored(self):
        rows = build_score_rows(["C4", "D4"])
        rows[2].extend(["bad", "bad", "bad"])
        assert validate_score(table_from(rows)).graph_width == 800

    def test_numeric_cells_from_a_spreadsheet_reader(self):
        """Whole numbers handed over as floats validate like their text form."""
        rows = build_score_rows(["C4", "D4"])
        rows[1][0] = 1.0
        rows[2][0] = 2.0
        rows[1][2] = 0.25
        rows[1][8] = 1.0
        rows[1][9:12] = [800.0, 600.0, 20.0]
        score = validate_score(table_from(rows))

        assert [entry.line_number for entry in score.entries] == [1, 2]
        assert score.entries[0].duration == 0.25
        assert score.graph_width == 800
        assert table_from(rows).text(0, 0) == "1"



class TestCheckOrder:
    def test_line_numbers_before_notes(self):
        rows = build_score_rows(["C4", "D4"])
        rows[1][1] = "Z9"
        rows[2][0] = "7"
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))
        assert excinfo.value.column == "Line number"

    def test_notes_before_durations(self):
        rows = build_score_rows(["C4", "D4"])
        rows[2][1] = "Z9"
        rows[1][2] = "0"
        with pytest.raises(ScoreStructureError) as excinfo:
            validate_score(table_from(rows))
        assert excinfo.value.column == "Note"

    def test_include_flags_before_repair(self):
        """A bad flag is reported even when the last entry also needs repair."""
        rows = build_score_rows(["C4", "D4"])
        rows[1][5] = "?"
        rows[2][4] = "Y"
        with pytest.raises(ScoreStructureError):
            validate_score(table_from(rows))

    def test_repair_before_spacing(self):
        rows = build_score_rows(["C4", "D4"])
        rows[2][4] = "Y"
        rows[1][8] = "0"
        with pytest.raises(ScoreAutoRepaired):
            validate_score(table_from(rows))


class TestAutoRepair:
    @pytest.mark.parametrize(("tl", "art"), [("Y", "N"), ("N", "Y"), ("y", "y")])
    def test_last_entry_flags_are_forced_to_n(self, tl, art):
        rows = build_score_rows(["C4", "D4", "E4"])
        rows[3][4] = tl
        rows[3][6] = art
        table = table_from(rows)

        with pytest.raises(ScoreAutoRepaired) as excinfo:
            validate_score(table)

        notice = excinfo.value
        assert notice.row == 4
        assert notice.table is table
        assert table.text(2, 4) == "N"
        assert table.text(2, 6) == "N"
        assert "run the analysis again" in str(notice)

    def test_repaired_table_validates(self):
        rows = build_score_rows(["C4", "D4"])
        rows[2][4] = "Y"
        table = table_from(rows)
        with pytest.raises(ScoreAutoRepaired):
            validate_score(table)

        score = validate_score(table)
        assert score.entries[-1].include_tone_lengthening is False
        assert score.entries[-1].include_articulation is False

    def test_only_last_entry_is_touched(self):
        rows = build_score_rows(["C4", "D4"])
        rows[2][6] = "Y"
        table = table_from(rows)
        with pytest.raises(ScoreAutoRepaired):
            validate_score(table)
        assert table.text(0, 4) == "Y"
        assert table.text(0, 6) == "Y"


class TestScoreFiles:
    def write_rows(self, path, rows):
        with path.open("w", newline="") as f:
            csv.writer(f).writerows(rows)

    def test_load_score(self, tmp_path):
        path = tmp_path / "score.csv"
        self.write_rows(path, build_score_rows(["C4", "E4", "G4"]))

        score = load_score(path)
        assert [entry.pitch for entry in score.entries] == ["C4", "E4", "G4"]

    def test_repair_is_saved(self, tmp_path):
        """The corrected table is written back, so the next load succeeds."""
        path = tmp_path / "score.csv"
        rows = build_score_rows(["C4", "E4"])
        rows[2][4] = "Y"
        self.write_rows(path, rows)

        with pytest.raises(ScoreAutoRepaired):
            load_score(path)

        assert read_score_table(path).text(1, 4) == "N"
        assert len(load_score(path)) == 2

    def test_structure_error_leaves_file_alone(self, tmp_path):
        path = tmp_path / "score.csv"
        rows = build_score_rows(["C4", "E4"])
        rows[1][1] = "X1"
        self.write_rows(path, rows)
        before = path.read_text()

        with pytest.raises(ScoreStructureError):
            load_score(path)
        assert path.read_text() == before

    def test_write_then_read(self, tmp_path, make_table):
        path = tmp_path / "out.csv"
        table = make_table(["C4", "D4"])
        write_score_table(path, table)
        assert read_score_table(path) == table
