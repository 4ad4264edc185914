"""
Progress Gate - Section gating and the module state machine.

Provides:
- Section accessibility (linear: a section opens once the previous one is done)
- Section display states for navigation
- Section completion with percentage/status recomputation
- ProgressGate: a learner's session on one module with an optimistic local
  view, a confirmed persisted view and reconciliation between them
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from wellcoach.errors import NotFoundError, PersistenceError
from wellcoach.schemas import ModuleSection, ModuleStatus, TrainingModule, UserModuleProgress

if TYPE_CHECKING:
    from .catalog import CatalogLoader
    from .ledger import SubmissionLedger


logger = logging.getLogger(__name__)


class SectionAccess(str, Enum):
    """Section state for navigation display."""
    COMPLETED = "completed"     # In completed_sections
    CURRENT = "current"         # The tracked pointer
    ACCESSIBLE = "accessible"   # Open but not started
    LOCKED = "locked"           # Previous section not completed


@dataclass
class SectionView:
    """Section with gating metadata."""
    section: ModuleSection
    index: int
    access: SectionAccess

    @property
    def is_accessible(self) -> bool:
        return self.access != SectionAccess.LOCKED


# -----------------------------------------------------------------------------
# Pure gating rules
# -----------------------------------------------------------------------------

def _completed_ids(progress: Optional[UserModuleProgress]) -> set[str]:
    return set(progress.completed_sections) if progress else set()


def compute_progress_percentage(module: TrainingModule, completed_sections: list[str]) -> float:
    """Share of the module's sections that are completed, 0-100."""
    known = set(module.section_ids)
    done = len(known.intersection(completed_sections))
    return min(100.0, done / len(module.sections) * 100)


def is_section_accessible(module: TrainingModule, progress: Optional[UserModuleProgress], index: int) -> bool:
    """Section 0 is always open; section i opens once section i-1 is completed."""
    if index < 0 or index >= len(module.sections):
        return False
    if index == 0:
        return True
    return module.sections[index - 1].id in _completed_ids(progress)


def first_open_section_index(module: TrainingModule, progress: Optional[UserModuleProgress]) -> Optional[int]:
    """Index of the first accessible, incomplete section (None when all are done)."""
    completed = _completed_ids(progress)
    for idx, section in enumerate(module.sections):
        if section.id not in completed and is_section_accessible(module, progress, idx):
            return idx
    return None


def resolve_current_index(module: TrainingModule, progress: Optional[UserModuleProgress]) -> int:
    """
    Pointer for a freshly loaded progress record.

    Uses current_section_id when it names an accessible section, otherwise
    the first open section, otherwise the last section.
    """
    if progress and progress.current_section_id:
        idx = module.section_index(progress.current_section_id)
        if idx >= 0 and is_section_accessible(module, progress, idx):
            return idx
    idx = first_open_section_index(module, progress)
    return idx if idx is not None else len(module.sections) - 1


def section_states(
    module: TrainingModule,
    progress: Optional[UserModuleProgress],
    current_index: Optional[int] = None,
) -> list[SectionView]:
    """Display state for every section. Completion wins over the pointer."""
    if current_index is None:
        current_index = resolve_current_index(module, progress)
    completed = _completed_ids(progress)

    views = []
    for idx, section in enumerate(module.sections):
        if section.id in completed:
            access = SectionAccess.COMPLETED
        elif idx == current_index:
            access = SectionAccess.CURRENT
        elif is_section_accessible(module, progress, idx):
            access = SectionAccess.ACCESSIBLE
        else:
            access = SectionAccess.LOCKED
        views.append(SectionView(section=section, index=idx, access=access))
    return views


def apply_section_completion(
    module: TrainingModule,
    progress: UserModuleProgress,
    section_id: str,
    now: datetime,
) -> UserModuleProgress:
    """
    Return progress with a section marked complete.

    Recomputes the percentage, completes the module when every section is
    done and moves the section pointer forward. Completing an already
    completed section changes nothing but the (identical) percentage.

    Raises:
        NotFoundError: If the section is not part of the module
    """
    index = module.section_index(section_id)
    if index < 0:
        raise NotFoundError("section", section_id)

    if section_id in progress.completed_sections:
        return recompute_progress(module, progress, now)

    completed = [sid for sid in progress.completed_sections if module.section_index(sid) >= 0]
    completed.append(section_id)

    # Pointer only moves forward
    pointer = min(index + 1, len(module.sections) - 1)
    if progress.current_section_id:
        previous = module.section_index(progress.current_section_id)
        pointer = max(pointer, previous)

    updates = {
        "completed_sections": completed,
        "progress_percentage": compute_progress_percentage(module, completed),
        "current_section_id": module.sections[pointer].id,
        "last_accessed_at": now,
        "started_at": progress.started_at or now,
        "status": ModuleStatus.IN_PROGRESS,
    }
    if len(completed) == len(module.sections):
        updates["status"] = ModuleStatus.COMPLETED
        updates["completed_at"] = progress.completed_at or now

    return progress.model_copy(update=updates)


def recompute_progress(module: TrainingModule, progress: UserModuleProgress, now: datetime) -> UserModuleProgress:
    """
    Repair derived fields of a stored record against the module.

    Drops unknown section ids, recomputes the percentage and completes the
    module when every section is done.
    """
    completed = [sid for sid in progress.completed_sections if module.section_index(sid) >= 0]
    updates = {
        "completed_sections": completed,
        "progress_percentage": compute_progress_percentage(module, completed),
    }
    if progress.current_section_id and module.section_index(progress.current_section_id) < 0:
        updates["current_section_id"] = None
    if len(completed) == len(module.sections) and progress.status != ModuleStatus.COMPLETED:
        updates["status"] = ModuleStatus.COMPLETED
        updates["completed_at"] = progress.completed_at or now
    return progress.model_copy(update=updates)


# -----------------------------------------------------------------------------
# Learner session
# -----------------------------------------------------------------------------

@dataclass
class CompletionOutcome:
    """Result of completing a section from the gate."""
    section_id: str
    persisted: bool
    module_completed: bool
    current_index: int
    next_module_id: Optional[str] = None
    error: Optional[PersistenceError] = None


@dataclass
class ReconcileReport:
    """Differences between the optimistic view and the ledger after a reload."""
    diverged: bool
    unconfirmed_sections: list[str] = field(default_factory=list)


class ProgressGate:
    """
    A learner's session on one module.

    Keeps two views of progress: `confirmed` (last state read from or written
    to the ledger) and `local` (what the learner sees, possibly ahead of the
    ledger after a failed write). reload() replaces the local view with the
    ledger's and reports what was lost.
    """

    def __init__(
        self,
        catalog: "CatalogLoader",
        ledger: "SubmissionLedger",
        user_id: str,
        module_id: str,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Open a module for a learner.

        Raises:
            NotFoundError: If the module is unknown
        """
        self.catalog = catalog
        self.ledger = ledger
        self.user_id = user_id
        self.module = catalog.require_module(module_id)
        self.clock = clock
        self.confirmed: Optional[UserModuleProgress] = None
        self.local: UserModuleProgress = UserModuleProgress(user_id=user_id, module_id=module_id)
        self.current_index = 0
        self.reload()

    @property
    def module_id(self) -> str:
        return self.module.id

    @property
    def status(self) -> ModuleStatus:
        return self.local.status

    @property
    def progress_percentage(self) -> float:
        return self.local.progress_percentage

    @property
    def is_completed(self) -> bool:
        return self.local.status == ModuleStatus.COMPLETED

    @property
    def current_section(self) -> ModuleSection:
        return self.module.sections[self.current_index]

    @property
    def has_pending_changes(self) -> bool:
        """True when the local view is ahead of the ledger."""
        confirmed = set(self.confirmed.completed_sections) if self.confirmed else set()
        return bool(set(self.local.completed_sections) - confirmed)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def reload(self) -> ReconcileReport:
        """
        Re-read progress from the ledger and reconcile.

        Starts the module (not_started -> in_progress) when needed. If the
        ledger cannot be written, the session continues from an unsaved
        in-progress record.
        """
        previous_local = self.local
        progress = self.ledger.get_module_progress(self.user_id, self.module.id)
        if progress is None or progress.status == ModuleStatus.NOT_STARTED:
            try:
                progress = self.ledger.start_module(self.user_id, self.module.id)
            except PersistenceError as e:
                logger.warning(f"Could not start module {self.module.id} for {self.user_id}: {e}")
                now = self.clock()
                progress = (progress or UserModuleProgress(user_id=self.user_id, module_id=self.module.id)).model_copy(
                    update={"status": ModuleStatus.IN_PROGRESS, "started_at": now, "last_accessed_at": now}
                )

        unconfirmed = [
            sid for sid in previous_local.completed_sections
            if sid not in progress.completed_sections
        ]
        report = ReconcileReport(diverged=bool(unconfirmed), unconfirmed_sections=unconfirmed)
        if report.diverged:
            logger.warning(
                f"Progress for {self.module.id} reverted to ledger state; "
                f"unsaved sections: {', '.join(unconfirmed)}"
            )

        self.confirmed = progress
        self.local = progress
        self.current_index = resolve_current_index(self.module, progress)
        return report

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def can_access(self, index: int) -> bool:
        return is_section_accessible(self.module, self.local, index)

    def can_access_section(self, section_id: str) -> bool:
        return self.can_access(self.module.section_index(section_id))

    def sections(self) -> list[SectionView]:
        return section_states(self.module, self.local, self.current_index)

    def navigate_to(self, index: int) -> bool:
        """Move the pointer to an accessible section. Returns False if locked."""
        if not self.can_access(index):
            return False
        self.current_index = index
        return True

    # -------------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------------

    def complete_section(self, section_id: str) -> CompletionOutcome:
        """
        Mark a section complete and advance.

        The local view and pointer advance even if the ledger write fails;
        the failure is logged and returned in the outcome.

        Raises:
            NotFoundError: If the section is not part of this module
        """
        index = self.module.section_index(section_id)
        if index < 0:
            raise NotFoundError("section", section_id)

        self.local = apply_section_completion(self.module, self.local, section_id, self.clock())

        persisted = True
        error = None
        try:
            self.confirmed = self.ledger.complete_section(self.user_id, self.module.id, section_id)
        except PersistenceError as e:
            logger.warning(f"Section {section_id} completed locally but not saved: {e}")
            persisted = False
            error = e

        if index + 1 < len(self.module.sections):
            self.current_index = max(self.current_index, index + 1)

        module_completed = self.local.status == ModuleStatus.COMPLETED
        next_module_id = None
        if module_completed:
            next_module_id = self.catalog.get_next_module_id(self.module.id)
            logger.info(f"Module {self.module.id} completed by {self.user_id}")

        return CompletionOutcome(
            section_id=section_id,
            persisted=persisted,
            module_completed=module_completed,
            current_index=self.current_index,
            next_module_id=next_module_id,
            error=error,
        )
