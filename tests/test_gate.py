"""
Tests for section gating and the ProgressGate session.
"""

import pytest
from datetime import datetime

from wellcoach.errors import NotFoundError, PersistenceError
from wellcoach.schemas import ModuleStatus, UserModuleProgress
from wellcoach.training import (
    ProgressGate,
    SectionAccess,
    SubmissionLedger,
    apply_section_completion,
    compute_progress_percentage,
    is_section_accessible,
    section_states,
)

from conftest import USER_ID


class FlakyLedger(SubmissionLedger):
    """Ledger whose writes can be switched off."""
    fail_writes = False

    def _write(self, sql, params):
        if self.fail_writes:
            raise PersistenceError("database is locked")
        super()._write(sql, params)


@pytest.fixture
def flaky_ledger(tmp_path, catalog, clock):
    return FlakyLedger(catalog, tmp_path / "flaky.db", clock=clock)


def progress_with(*sections, status=ModuleStatus.IN_PROGRESS) -> UserModuleProgress:
    return UserModuleProgress(
        user_id=USER_ID,
        module_id="module_1",
        status=status,
        completed_sections=list(sections),
    )


class TestAccessibility:
    """Section i is open iff i == 0 or section i-1 is completed."""

    def test_first_section_always_open(self, catalog):
        module = catalog.get_module("module_1")
        assert is_section_accessible(module, None, 0)
        assert is_section_accessible(module, progress_with(), 0)

    @pytest.mark.parametrize("completed, expected", [
        ((), [True, False, False]),
        (("m1_s1",), [True, True, False]),
        (("m1_s1", "m1_s2"), [True, True, True]),
        (("m1_s2",), [True, False, True]),
        (("m1_s1", "m1_s2", "m1_s3"), [True, True, True]),
    ])
    def test_gating_rule(self, catalog, completed, expected):
        module = catalog.get_module("module_1")
        progress = progress_with(*completed)
        assert [is_section_accessible(module, progress, i) for i in range(3)] == expected

    def test_out_of_range(self, catalog):
        module = catalog.get_module("module_1")
        progress = progress_with("m1_s1", "m1_s2", "m1_s3")
        assert not is_section_accessible(module, progress, -1)
        assert not is_section_accessible(module, progress, 3)

    def test_progress_percentage(self, catalog):
        module = catalog.get_module("module_1")
        assert compute_progress_percentage(module, []) == 0
        assert compute_progress_percentage(module, ["m1_s1"]) == pytest.approx(100 / 3)
        assert compute_progress_percentage(module, ["m1_s1", "bogus"]) == pytest.approx(100 / 3)
        assert compute_progress_percentage(module, ["m1_s1", "m1_s2", "m1_s3"]) == 100


class TestSectionStates:

    def test_fresh_module(self, catalog):
        module = catalog.get_module("module_1")
        states = [view.access for view in section_states(module, progress_with())]
        assert states == [SectionAccess.CURRENT, SectionAccess.LOCKED, SectionAccess.LOCKED]

    def test_after_first_section(self, catalog):
        module = catalog.get_module("module_1")
        states = [view.access for view in section_states(module, progress_with("m1_s1"))]
        assert states == [SectionAccess.COMPLETED, SectionAccess.CURRENT, SectionAccess.LOCKED]

    def test_accessible_but_not_current(self, catalog):
        module = catalog.get_module("module_1")
        views = section_states(module, progress_with("m1_s1"), current_index=0)
        assert [view.access for view in views] == [
            SectionAccess.COMPLETED,
            SectionAccess.ACCESSIBLE,
            SectionAccess.LOCKED,
        ]
        assert not views[2].is_accessible

    def test_completed_wins_over_pointer(self, catalog):
        module = catalog.get_module("module_1")
        views = section_states(module, progress_with("m1_s1", "m1_s2", "m1_s3"), current_index=2)
        assert all(view.access == SectionAccess.COMPLETED for view in views)


class TestApplySectionCompletion:

    def test_last_section_completes_module(self, catalog):
        module = catalog.get_module("module_1")
        now = datetime(2024, 3, 4, 10, 0)
        progress = progress_with("m1_s1", "m1_s2")
        updated = apply_section_completion(module, progress, "m1_s3", now)
        assert updated.status == ModuleStatus.COMPLETED
        assert updated.progress_percentage == 100
        assert updated.completed_at == now

    def test_idempotent(self, catalog):
        module = catalog.get_module("module_1")
        now = datetime(2024, 3, 4, 10, 0)
        once = apply_section_completion(module, progress_with(), "m1_s1", now)
        twice = apply_section_completion(module, once, "m1_s1", now)
        assert twice.completed_sections == once.completed_sections
        assert twice.progress_percentage == once.progress_percentage

    def test_pointer_moves_forward_only(self, catalog):
        module = catalog.get_module("module_1")
        now = datetime(2024, 3, 4, 10, 0)
        progress = progress_with("m1_s2").model_copy(update={"current_section_id": "m1_s3"})
        updated = apply_section_completion(module, progress, "m1_s1", now)
        assert updated.current_section_id == "m1_s3"

    def test_unknown_section(self, catalog):
        module = catalog.get_module("module_1")
        with pytest.raises(NotFoundError):
            apply_section_completion(module, progress_with(), "m2_s1", datetime(2024, 3, 4))


class TestProgressGate:

    def test_opening_starts_module(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        assert gate.status == ModuleStatus.IN_PROGRESS
        assert gate.current_index == 0
        stored = ledger.get_module_progress(USER_ID, "module_1")
        assert stored.status == ModuleStatus.IN_PROGRESS
        assert stored.started_at == clock.now

    def test_unknown_module(self, catalog, ledger):
        with pytest.raises(NotFoundError):
            ProgressGate(catalog, ledger, USER_ID, "module_9")

    def test_complete_section_advances(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        outcome = gate.complete_section("m1_s1")
        assert outcome.persisted
        assert not outcome.module_completed
        assert outcome.current_index == 1
        assert gate.current_section.id == "m1_s2"
        assert gate.can_access(1)
        assert not gate.can_access(2)
        assert gate.progress_percentage == pytest.approx(100 / 3)
        assert not gate.has_pending_changes

    def test_navigation_respects_locks(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        assert not gate.navigate_to(2)
        assert gate.current_index == 0
        gate.complete_section("m1_s1")
        assert gate.navigate_to(0)
        assert gate.current_index == 0
        assert gate.can_access_section("m1_s2")
        assert not gate.can_access_section("unknown")

    def test_complete_all_sections(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        for section_id in ("m1_s1", "m1_s2"):
            gate.complete_section(section_id)
        clock.advance(minutes=30)
        outcome = gate.complete_section("m1_s3")

        assert outcome.module_completed
        assert outcome.next_module_id == "module_2"
        assert gate.is_completed
        assert gate.progress_percentage == 100
        stored = ledger.get_module_progress(USER_ID, "module_1")
        assert stored.status == ModuleStatus.COMPLETED
        assert stored.completed_at == clock.now

    def test_last_module_has_no_next(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_3", clock=clock)
        for section_id in ("m3_s1", "m3_s2", "m3_s3"):
            outcome = gate.complete_section(section_id)
        assert outcome.module_completed
        assert outcome.next_module_id is None

    def test_complete_twice_is_idempotent(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        gate.complete_section("m1_s1")
        first = ledger.get_module_progress(USER_ID, "module_1")
        gate.complete_section("m1_s1")
        second = ledger.get_module_progress(USER_ID, "module_1")
        assert second.completed_sections == first.completed_sections
        assert second.progress_percentage == first.progress_percentage

    def test_complete_unknown_section(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        with pytest.raises(NotFoundError):
            gate.complete_section("m2_s1")

    def test_resumes_from_ledger(self, catalog, ledger, clock):
        ledger.complete_section(USER_ID, "module_1", "m1_s1")
        ledger.complete_section(USER_ID, "module_1", "m1_s2")
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        assert gate.current_section.id == "m1_s3"
        assert [view.access for view in gate.sections()] == [
            SectionAccess.COMPLETED,
            SectionAccess.COMPLETED,
            SectionAccess.CURRENT,
        ]


class TestOptimisticProgress:
    """Local view runs ahead of the ledger when writes fail."""

    def test_failed_write_still_advances(self, catalog, flaky_ledger, clock, caplog):
        gate = ProgressGate(catalog, flaky_ledger, USER_ID, "module_1", clock=clock)
        flaky_ledger.fail_writes = True

        outcome = gate.complete_section("m1_s1")

        assert not outcome.persisted
        assert isinstance(outcome.error, PersistenceError)
        assert gate.current_index == 1
        assert "m1_s1" in gate.local.completed_sections
        assert "m1_s1" not in gate.confirmed.completed_sections
        assert gate.has_pending_changes
        assert "not saved" in caplog.text

    def test_reload_reconciles(self, catalog, flaky_ledger, clock):
        gate = ProgressGate(catalog, flaky_ledger, USER_ID, "module_1", clock=clock)
        flaky_ledger.fail_writes = True
        gate.complete_section("m1_s1")
        flaky_ledger.fail_writes = False

        report = gate.reload()

        assert report.diverged
        assert report.unconfirmed_sections == ["m1_s1"]
        assert gate.local.completed_sections == []
        assert gate.current_index == 0
        assert not gate.has_pending_changes

    def test_reload_without_divergence(self, catalog, ledger, clock):
        gate = ProgressGate(catalog, ledger, USER_ID, "module_1", clock=clock)
        gate.complete_section("m1_s1")
        report = gate.reload()
        assert not report.diverged
        assert gate.local.completed_sections == ["m1_s1"]

    def test_module_completion_on_failed_write(self, catalog, flaky_ledger, clock):
        gate = ProgressGate(catalog, flaky_ledger, USER_ID, "module_1", clock=clock)
        gate.complete_section("m1_s1")
        gate.complete_section("m1_s2")
        flaky_ledger.fail_writes = True
        outcome = gate.complete_section("m1_s3")
        assert outcome.module_completed
        assert not outcome.persisted
        assert flaky_ledger.get_module_progress(USER_ID, "module_1").status == ModuleStatus.IN_PROGRESS

    def test_start_failure_keeps_session_usable(self, catalog, flaky_ledger, clock):
        flaky_ledger.fail_writes = True
        gate = ProgressGate(catalog, flaky_ledger, USER_ID, "module_1", clock=clock)
        assert gate.status == ModuleStatus.IN_PROGRESS
        assert flaky_ledger.get_module_progress(USER_ID, "module_1") is None
        outcome = gate.complete_section("m1_s1")
        assert not outcome.persisted
        assert gate.current_index == 1
