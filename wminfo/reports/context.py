from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ReportContext:
    session: Any
    config: Any
    logger: Any
    diagnostics: Any
    discovery: Any
    projector: Any


@dataclass
class ReportResult:
    command: str
    tables: Dict[str, List[Dict[str, object]]] = field(default_factory=dict)
    about: Dict[str, str] = field(default_factory=dict)
    details: List[Any] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def console_issued(self) -> bool:
        return any(getattr(detail, "console", None) for detail in self.details)


def text_bool(value: Optional[bool]) -> str:
    if value is None:
        return ""
    return "true" if value else "false"
