"""
Tests for the wellcoach command line.
"""

import pytest

from wellcoach.cli import main
from wellcoach.errors import PersistenceError
from wellcoach.training import SubmissionLedger


@pytest.fixture
def run(tmp_path, capsys):
    db = tmp_path / "progress.db"

    def _run(*args):
        code = main(["--db", str(db), "--user", "tester", *args])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


class TestCli:

    def test_modules(self, run):
        code, out, _ = run("modules")
        assert code == 0
        assert len(out.strip().splitlines()) == 8
        assert "[module_1]" in out

    def test_status_overview(self, run):
        code, out, _ = run("status")
        assert code == 0
        assert out.count("Not started") == 8

    def test_start_and_status(self, run):
        code, out, _ = run("start", "module_2")
        assert code == 0
        assert "section_2_1" in out
        _, out, _ = run("status", "module_2")
        assert "In progress (0%)" in out
        assert "→ 1." in out
        assert "◌ 2." in out

    def test_complete_section(self, run):
        code, out, _ = run("complete", "module_1", "section_1_1")
        assert code == 0
        assert "Completed section_1_1 (33%)" in out
        assert "Next section: The Holistic Approach to Health" in out
        _, out, _ = run("status", "module_1")
        assert "✓ 1." in out

    def test_complete_module_and_certificate(self, run):
        for section_id in ("section_1_1", "section_1_2"):
            run("complete", "module_1", section_id)
        code, out, _ = run("complete", "module_1", "section_1_3")
        assert code == 0
        assert "Module module_1 completed!" in out
        assert "Next module: module_2" in out

        code, out, _ = run("certificate", "module_1")
        assert code == 0
        assert "Certificate WC-" in out

        _, out, _ = run("certificate")
        assert "module_1" in out

    def test_certificate_requires_completion(self, run):
        code, _, err = run("certificate", "module_1")
        assert code == 1
        assert "Module not completed" in err

    def test_unknown_module(self, run):
        code, _, err = run("start", "module_99")
        assert code == 1
        assert "module not found: module_99" in err

    def test_submit(self, run):
        code, out, _ = run(
            "submit", "module_1", "exercise_1_1_1",
            "--response", "answer=Feeling rested",
            "--response", "goal=",
        )
        assert code == 0
        assert "score 50" in out

    def test_submit_json(self, run):
        code, out, _ = run("submit", "module_1", "exercise_1_1_1", "--json", '{"answer": "yes"}')
        assert code == 0
        assert "score 100" in out

    def test_bad_response_argument(self, run):
        with pytest.raises(SystemExit) as exc_info:
            run("submit", "module_1", "exercise_1_1_1", "--response", "no-equals-sign")
        assert exc_info.value.code == 2

    def test_achievements_and_analytics(self, run):
        run("submit", "module_1", "exercise_1_1_1", "--response", "answer=yes")

        code, out, _ = run("achievements")
        assert code == 0
        assert "achievements earned" in out
        assert "First Steps" in out

        code, out, _ = run("achievements", "--category", "module", "--earned-only")
        assert code == 0
        assert "First Steps" not in out

        code, out, _ = run("analytics")
        assert code == 0
        assert "Submissions: 1" in out
        assert "module_1: 1/3 exercises" in out

    @pytest.mark.parametrize("args", [
        ("start", "module_1"),
        ("submit", "module_1", "exercise_1_1_1", "--response", "answer=yes"),
    ])
    def test_failed_write_reported(self, run, monkeypatch, caplog, args):
        def failing_write(self, sql, params):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(SubmissionLedger, "_write", failing_write)
        code, _, err = run(*args)
        assert code == 1
        assert "progress was not saved (database is locked)" in err
        assert "could not save" in caplog.text
