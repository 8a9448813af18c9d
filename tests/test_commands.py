# -*- coding: utf-8 -*-
"""Tests for the command line entry points."""

from navadjust_lib.commands.crossings import crossings
from navadjust_lib.commands.invert import invert
from navadjust_lib.enums import InversionStatus
from navadjust_lib.io import load_project
from navadjust_lib.io import save_project
from tests.conftest import add_e2e_tie
from tests.conftest import east_line
from tests.conftest import far_line
from tests.conftest import north_line
from tests.conftest import write_sections


class TestCrossingsCommand:
    """Tests for ``navadjust crossings``."""

    def test_new_project(self, tmp_path, capsys):
        east = write_sections(tmp_path / "east.json", [east_line()])
        north = write_sections(tmp_path / "north.json", [north_line()])
        project_path = tmp_path / "survey.json"

        code = crossings(["-i", str(project_path), "--new", "-a", str(east), "-a", str(north)])

        assert code == 0
        assert "1 new crossings" in capsys.readouterr().out
        project = load_project(project_path)
        assert project.name == "survey"
        assert project.num_files == 2
        assert project.num_crossings == 1

    def test_append_to_existing(self, crossing_project, tmp_path, capsys):
        project_path = tmp_path / "survey.json"
        save_project(crossing_project, project_path)
        late = write_sections(tmp_path / "late.json", [north_line(t0=5000.0)])
        output = tmp_path / "out.json"

        code = crossings(["-i", str(project_path), "-a", str(late), "-s", "poor", "-o", str(output)])

        assert code == 0
        project = load_project(output)
        assert project.num_files == 4
        assert project.files[3].status.value == "poor"
        assert [c.side_2 for c in project.crossings] == [(1, 0), (3, 0), (3, 0)]
        # the input is left untouched when an output path is given
        assert load_project(project_path).num_files == 3

    def test_rebuild_unanalyzed(self, crossing_project, tmp_path, capsys):
        project_path = tmp_path / "survey.json"
        save_project(crossing_project, project_path)
        assert crossings(["-i", str(project_path), "--rebuild"]) == 0
        assert "1 new crossings, 1 total" in capsys.readouterr().out

    def test_rebuild_refused_after_analysis(self, tied_project, tmp_path):
        project_path = tmp_path / "survey.json"
        save_project(tied_project, project_path)
        assert crossings(["-i", str(project_path), "--rebuild"]) == 1

    def test_missing_input(self, tmp_path):
        assert crossings(["-i", str(tmp_path / "missing.json")]) == 1

    def test_bad_sections(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('[{"time_start": 0.0}]', encoding="utf-8")
        assert crossings(["-i", str(tmp_path / "p.json"), "--new", "-a", str(bad)]) == 1


class TestInvertCommand:
    """Tests for ``navadjust invert``."""

    def test_invert(self, crossing_project, tmp_path, capsys):
        add_e2e_tie(crossing_project)
        project_path = tmp_path / "survey.json"
        save_project(crossing_project, project_path)

        code = invert(["-i", str(project_path), "--smoothing", "0"])

        assert code == 0
        assert capsys.readouterr().out.startswith("Converged after")
        project = load_project(project_path)
        assert project.inversion is InversionStatus.CURRENT
        assert project.settings.smoothing == 0.0

    def test_iteration_cap_is_not_an_error(self, crossing_project, tmp_path, capsys):
        add_e2e_tie(crossing_project)
        project_path = tmp_path / "survey.json"
        save_project(crossing_project, project_path)

        code = invert(["-i", str(project_path), "--no-blocks", "--max-iterations", "1"])

        assert code == 0
        out = capsys.readouterr().out
        assert out.startswith("Not fully converged after 1 iterations")
        assert "warning: Not fully converged" in out

    def test_refused_without_ties(self, crossing_project, tmp_path):
        project_path = tmp_path / "survey.json"
        save_project(crossing_project, project_path)
        assert invert(["-i", str(project_path)]) == 1
        assert load_project(project_path).inversion is InversionStatus.NONE

    def test_untied_file_is_not_moved(self, tmp_path):
        """A file without any tie keeps a zero offset."""
        sections = [
            write_sections(tmp_path / f"{name}.json", [record])
            for name, record in (
                ("east", east_line()),
                ("north", north_line()),
                ("far", far_line()),
            )
        ]
        project_path = tmp_path / "survey.json"
        args = ["-i", str(project_path), "--new"]
        for path in sections:
            args += ["-a", str(path)]
        assert crossings(args) == 0

        project = load_project(project_path)
        add_e2e_tie(project)
        save_project(project, project_path)
        assert invert(["-i", str(project_path)]) == 0

        solved = load_project(project_path)
        assert all(p.offset.length == 0.0 for p in solved.section(2, 0).nav_points)
        assert any(p.offset.length > 0.0 for p in solved.section(1, 0).nav_points)
