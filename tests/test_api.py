"""Tests for the run-level grading API."""

import csv
import json

import pytest
from conftest import SCALE, build_score_rows, build_take

from performance_grader import (
    AnalysisReport,
    EventFormatError,
    ScoreAutoRepaired,
    ScoreStructureError,
    analyze_files,
    analyze_takes,
)


def write_csv(path, rows):
    with path.open("w", newline="") as f:
        csv.writer(f).writerows(rows)


def take_rows(pitches, velocity=64, header_rows=10):
    """Event table for a take: header region, start marker, note pairs, end marker."""
    rows = [["Header", str(index)] for index in range(header_rows)]
    rows.append(["1", "0", "0", "Start_track"])
    onset = 0
    for pitch in pitches:
        rows.append(["2", str(onset), str(onset), "Note_on_c", "0", "", pitch, str(velocity)])
        rows.append(["2", str(onset + 400), str(onset + 400), "Note_on_c", "0", "", pitch, "0"])
        onset += 500
    rows.append(["0", str(onset), str(onset), "End_of_file"])
    return rows


class TestAnalyzeTakes:
    def test_bad_takes_are_listed_and_skipped(self, scale_score):
        """A failed take is reported while the others are still graded."""
        good = build_take(SCALE[:7], name="good")
        bad_pitches = list(SCALE[:7])
        bad_pitches[1] = "A2"
        bad_pitches[4] = "A2"
        bad = build_take(bad_pitches, name="bad")
        resynced_pitches = list(SCALE[:7])
        resynced_pitches[3] = "A2"
        resynced = build_take(resynced_pitches, name="resynced")

        report = analyze_takes([good, bad, resynced], scale_score)

        assert isinstance(report, AnalysisReport)
        assert report.bad_takes == ["bad"]
        assert [result.name for result in report.alignments] == ["good", "bad", "resynced"]
        assert [deviations.name for deviations in report.deviations] == ["good", "resynced"]

    def test_deviations_for(self, scale_score):
        report = analyze_takes([build_take(SCALE[:7], name="one")], scale_score)

        assert report.deviations_for("one").velocity.baseline == pytest.approx(64.0)
        with pytest.raises(KeyError):
            report.deviations_for("missing")

    def test_timing_is_derived(self, scale_score):
        report = analyze_takes([build_take(SCALE[:7])], scale_score)
        deviations = report.deviations[0]

        assert deviations.ioi.available
        assert deviations.note_duration.available

    def test_timing_derivation_can_be_disabled(self, scale_score):
        report = analyze_takes([build_take(SCALE[:7])], scale_score, derive_timing=False)
        deviations = report.deviations[0]

        assert not deviations.ioi.available
        assert deviations.velocity.available

    def test_target_tempo(self, scale_score):
        report = analyze_takes([build_take(SCALE[:7])], scale_score, target_bpm=120)
        assert report.deviations[0].uses_target_tempo

    def test_bad_target_tempo(self, scale_score):
        with pytest.raises(ValueError):
            analyze_takes([build_take(SCALE[:7])], scale_score, target_bpm=-1)

    def test_no_takes(self, scale_score):
        report = analyze_takes([], scale_score)
        assert report.bad_takes == []
        assert report.deviations == ()

    def test_to_dict_is_json_serialisable(self, scale_score):
        take = build_take(SCALE[:7], name="one", velocities=[60, 61, 62, 63, 64, 65, 66])
        report = analyze_takes([take], scale_score)
        data = json.loads(json.dumps(report.to_dict()))

        assert data["bad_takes"] == []
        assert data["graph_width"] == 800
        assert data["takes"]["one"]["success"] is True
        assert len(data["takes"]["one"]["annotations"]) == 7
        velocity = data["deviations"]["one"]["velocity"]
        assert velocity["available"] is True
        assert velocity["baseline"] == 63.0
        # (60 - 63) / 63 * 100 rounded to two decimals
        assert velocity["points"][0]["value"] == -4.76


    def test_zero_mean_ioi_does_not_stop_the_run(self, make_score):
        """A take whose notes all start together is graded without its IOI series."""
        score = make_score(["C4", "E4", "G4"])
        chord = build_take(["C4", "E4", "G4"], name="chord", iois=[0.0, 0.0, 0.0])
        good = build_take(["C4", "E4", "G4"], name="good")

        report = analyze_takes([chord, good], score)

        assert report.bad_takes == []
        assert not report.deviations_for("chord").ioi.available
        assert report.deviations_for("chord").velocity.available
        assert report.deviations_for("good").ioi.available

    def test_model_comparison(self, scale_score):
        model = build_take(SCALE[:7], name="model", velocities=[80] * 7)
        take = build_take(SCALE[:7], name="one", velocities=[60] * 7)

        report = analyze_takes([take], scale_score, model=model)
        deviations = report.deviations_for("one")

        assert report.model is not None
        assert report.model.success
        assert report.bad_takes == []
        assert list(deviations.model_velocity.by_line().values()) == pytest.approx([-25.0] * 7)
        assert list(deviations.model_ioi.by_line().values()) == [0.0] * 6

    def test_failed_model_is_a_bad_take(self, scale_score):
        pitches = list(SCALE[:7])
        pitches[1] = "A2"
        pitches[4] = "A2"
        model = build_take(pitches, name="model")

        report = analyze_takes([build_take(SCALE[:7], name="one")], scale_score, model=model)

        assert report.bad_takes == ["model"]
        assert [deviations.name for deviations in report.deviations] == ["one"]
        assert not report.deviations_for("one").model_ioi.available

    def test_to_dict_includes_model(self, scale_score):
        model = build_take(SCALE[:7], name="model", velocities=[80] * 7)
        take = build_take(SCALE[:7], name="one", velocities=[60] * 7)
        data = json.loads(json.dumps(analyze_takes([take], scale_score, model=model).to_dict()))

        assert data["model"]["name"] == "model"
        assert data["model"]["success"] is True
        assert data["deviations"]["one"]["model_velocity"]["points"][0]["value"] == -25.0
        assert data["deviations"]["one"]["model_ioi"]["available"] is True

    def test_to_dict_without_model(self, scale_score):
        data = analyze_takes([build_take(SCALE[:7], name="one")], scale_score).to_dict()
        assert data["model"] is None
        assert "model_ioi" not in data["deviations"]["one"]


class TestAnalyzeFiles:
    def test_grades_csv_files(self, tmp_path):
        score_path = tmp_path / "score.csv"
        write_csv(score_path, build_score_rows(["C4", "E4", "G4", "C5"]))
        write_csv(tmp_path / "take1.csv", take_rows(["C4", "E4", "G4", "C5"]))
        write_csv(tmp_path / "take2.csv", take_rows(["C4", "F4", "G4", "D5"]))

        report = analyze_files(score_path, [tmp_path / "take1.csv", tmp_path / "take2.csv"])

        assert report.bad_takes == ["take2"]
        assert report.deviations_for("take1").ioi.baseline == pytest.approx(250.0)

    def test_custom_header_rows(self, tmp_path):
        score_path = tmp_path / "score.csv"
        write_csv(score_path, build_score_rows(["C4", "E4"]))
        write_csv(tmp_path / "short.csv", take_rows(["C4", "E4"], header_rows=3))

        report = analyze_files(score_path, [tmp_path / "short.csv"], header_rows=3)
        assert report.bad_takes == []

    def test_invalid_score(self, tmp_path):
        score_path = tmp_path / "score.csv"
        rows = build_score_rows(["C4", "E4"])
        rows[1][2] = "0"
        write_csv(score_path, rows)

        with pytest.raises(ScoreStructureError):
            analyze_files(score_path, [])

    def test_repaired_score_stops_the_run(self, tmp_path):
        score_path = tmp_path / "score.csv"
        rows = build_score_rows(["C4", "E4"])
        rows[2][6] = "Y"
        write_csv(score_path, rows)
        write_csv(tmp_path / "take.csv", take_rows(["C4", "E4"]))

        with pytest.raises(ScoreAutoRepaired):
            analyze_files(score_path, [tmp_path / "take.csv"])

        report = analyze_files(score_path, [tmp_path / "take.csv"])
        assert report.bad_takes == []

    def test_model_file(self, tmp_path):
        score_path = tmp_path / "score.csv"
        write_csv(score_path, build_score_rows(["C4", "E4", "G4", "C5"]))
        write_csv(tmp_path / "model.csv", take_rows(["C4", "E4", "G4", "C5"], velocity=80))
        write_csv(tmp_path / "take.csv", take_rows(["C4", "E4", "G4", "C5"], velocity=64))

        report = analyze_files(score_path, [tmp_path / "take.csv"], model_path=tmp_path / "model.csv")

        assert report.model.name == "model"
        assert report.deviations_for("take").model_velocity.by_line() == pytest.approx(
            {1: -20.0, 2: -20.0, 3: -20.0, 4: -20.0}
        )

    def test_unreadable_take_file(self, tmp_path):
        score_path = tmp_path / "score.csv"
        write_csv(score_path, build_score_rows(["C4", "E4"]))
        rows = take_rows(["C4", "E4"])
        rows[11][7] = "loud"
        write_csv(tmp_path / "take.csv", rows)

        with pytest.raises(EventFormatError):
            analyze_files(score_path, [tmp_path / "take.csv"])
