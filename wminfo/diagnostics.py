from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pyVmomi import vim, vmodl

from .errors import ConsoleHandoffError, ProjectionFailed

ERROR_TYPES = ("no_permission", "invalid_property", "not_found", "other_error")
MAX_EXAMPLES = 10


def _fault_classes():
    return (
        ("no_permission", (vim.fault.NoPermission,)),
        ("invalid_property", (vmodl.query.InvalidProperty,)),
        ("not_found", (vmodl.fault.ManagedObjectNotFound, vim.fault.NotFound)),
    )


def classify_exception(exc: BaseException) -> str:
    # los errores propios envuelven el fault original
    if isinstance(exc, (ProjectionFailed, ConsoleHandoffError)):
        exc = exc.cause
    for error_type, classes in _fault_classes():
        if isinstance(exc, classes):
            return error_type
    if "invalidproperty" in str(exc).lower().replace(" ", ""):
        return "invalid_property"
    return "other_error"


@dataclass
class SectionDiagnostics:
    attempted_count: int = 0
    success_count: int = 0
    errors: Counter = field(default_factory=Counter)
    examples: List[Dict[str, str]] = field(default_factory=list)

    @property
    def no_permission_count(self) -> int:
        return self.errors["no_permission"]

    @property
    def invalid_property_count(self) -> int:
        return self.errors["invalid_property"]

    @property
    def not_found_count(self) -> int:
        return self.errors["not_found"]

    @property
    def other_error_count(self) -> int:
        return self.errors["other_error"]

    @property
    def total_error_count(self) -> int:
        return sum(self.errors.values())

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "attempted_count": self.attempted_count,
            "success_count": self.success_count,
        }
        for error_type in ERROR_TYPES:
            data[f"{error_type}_count"] = self.errors[error_type]
        data["examples"] = list(self.examples)
        return data


class Diagnostics:
    """Contadores por seccion: reportes, referencias cruzadas y consola."""

    classify_exception = staticmethod(classify_exception)

    def __init__(self, section_names: Optional[List[str]] = None) -> None:
        self._stats: Dict[str, SectionDiagnostics] = {
            name: SectionDiagnostics() for name in section_names or []
        }
        self._runtime_config: Dict[str, object] = {}

    def get_section_stats(self, section: str) -> SectionDiagnostics:
        return self._stats.setdefault(section, SectionDiagnostics())

    def sections(self) -> List[str]:
        return list(self._stats)

    def add_attempt(self, section: str) -> None:
        self.get_section_stats(section).attempted_count += 1

    def add_success(self, section: str) -> None:
        self.get_section_stats(section).success_count += 1

    def add_error(self, section: str, entity: str, exc: BaseException) -> str:
        error_type = classify_exception(exc)
        stats = self.get_section_stats(section)
        stats.errors[error_type] += 1
        if len(stats.examples) < MAX_EXAMPLES:
            stats.examples.append(
                {"entity": str(entity), "error_type": error_type, "message": str(exc)}
            )
        return error_type

    def set_runtime_config(self, runtime_config: Dict[str, object]) -> None:
        self._runtime_config = dict(runtime_config)

    def to_dict(self) -> Dict[str, object]:
        sections = {section: stats.to_dict() for section, stats in self._stats.items()}
        return {"runtime_config": dict(self._runtime_config), **sections}
