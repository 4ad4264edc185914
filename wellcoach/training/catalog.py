"""
CatalogLoader - Load training modules from a YAML catalog.

Provides read-only access to:
- Modules in learning order
- Sections and exercises by id
- Explicit module succession (next module)
"""

import logging
from pathlib import Path
from typing import Optional

from wellcoach.config import DEFAULT_CATALOG_PATH
from wellcoach.errors import NotFoundError
from wellcoach.schemas import ModuleCatalog, ModuleExercise, ModuleSection, TrainingModule
from wellcoach.utils import load_yaml_file


logger = logging.getLogger(__name__)


class CatalogLoader:
    """
    Immutable module catalog.

    Modules are ordered by their `number`. Succession uses a module's
    explicit next_module_id when present, otherwise this order.
    """

    def __init__(self, catalog: ModuleCatalog):
        self._modules = sorted(catalog.modules, key=lambda m: m.number)
        self._module_index = {module.id: idx for idx, module in enumerate(self._modules)}

    @classmethod
    def from_file(cls, catalog_path: Optional[str | Path] = None) -> "CatalogLoader":
        """
        Load a catalog from YAML.

        Args:
            catalog_path: Path to the catalog file (default: bundled modules.yaml)

        Raises:
            FileNotFoundError: If the catalog file doesn't exist
            pydantic.ValidationError: If the catalog content is invalid
        """
        path = Path(catalog_path) if catalog_path else DEFAULT_CATALOG_PATH
        data = load_yaml_file(path)
        catalog = ModuleCatalog.model_validate(data)
        logger.debug(f"Loaded {len(catalog.modules)} modules from {path}")
        return cls(catalog)

    @property
    def total_modules(self) -> int:
        return len(self._modules)

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    def get_modules(self) -> list[TrainingModule]:
        """All modules in learning order."""
        return list(self._modules)

    def get_module_ids(self) -> list[str]:
        return [module.id for module in self._modules]

    def get_module(self, module_id: str) -> Optional[TrainingModule]:
        idx = self._module_index.get(module_id)
        return self._modules[idx] if idx is not None else None

    def require_module(self, module_id: str) -> TrainingModule:
        """Get a module or raise NotFoundError."""
        module = self.get_module(module_id)
        if module is None:
            raise NotFoundError("module", module_id)
        return module

    # -------------------------------------------------------------------------
    # Sections & Exercises
    # -------------------------------------------------------------------------

    def require_section(self, module_id: str, section_id: str) -> ModuleSection:
        module = self.require_module(module_id)
        section = module.get_section(section_id)
        if section is None:
            raise NotFoundError("section", section_id)
        return section

    def find_exercise(self, module_id: str, exercise_id: str) -> tuple[ModuleSection, ModuleExercise]:
        """
        Locate an exercise within a module.

        Returns:
            Tuple of (owning section, exercise)

        Raises:
            NotFoundError: If the module or exercise is unknown
        """
        module = self.require_module(module_id)
        for section in module.sections:
            exercise = section.get_exercise(exercise_id)
            if exercise is not None:
                return section, exercise
        raise NotFoundError("exercise", exercise_id)

    # -------------------------------------------------------------------------
    # Succession
    # -------------------------------------------------------------------------

    def get_next_module_id(self, module_id: str) -> Optional[str]:
        """ID of the module that follows, or None after the last one."""
        module = self.require_module(module_id)
        if module.next_module_id:
            return module.next_module_id
        idx = self._module_index[module_id]
        if idx + 1 >= len(self._modules):
            return None
        return self._modules[idx + 1].id
