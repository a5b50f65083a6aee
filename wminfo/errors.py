from __future__ import annotations

import re
from typing import Optional

_MSG_RE = re.compile(r"msg\s*=\s*'([^']+)'")


def describe_fault(exc: BaseException) -> str:
    """Mensaje legible para un fault de pyVmomi o cualquier otra excepcion."""
    fault_name = getattr(exc, "_wsdlName", None) or type(exc).__name__
    message = getattr(exc, "msg", None)
    if not message:
        match = _MSG_RE.search(str(exc))
        message = match.group(1) if match else str(exc)
    message = (message or "").strip()
    if not message or message == fault_name:
        return fault_name
    return f"{fault_name}: {message}"


class WminfoError(Exception):
    """Base de los errores del inventario."""


class ScopeNotFound(WminfoError):
    def __init__(self, scope: Optional[str], reason: str = "") -> None:
        self.scope = scope
        self.reason = reason
        label = scope or "<default>"
        detail = f" ({reason})" if reason else ""
        super().__init__(f"No se encontro el datacenter {label}{detail}")


class DiscoveryFailed(WminfoError):
    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Fallo {operation}: {describe_fault(cause)}")


class ProjectionFailed(WminfoError):
    def __init__(self, kind, cause: BaseException) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(
            f"Fallo la recuperacion de propiedades para {kind.value}: {describe_fault(cause)}"
        )


class ConsoleHandoffError(WminfoError):
    step = "console"

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Fallo {self.step}: {describe_fault(cause)}")


class CloneFailed(ConsoleHandoffError):
    step = "AcquireCloneTicket"


class FingerprintFailed(ConsoleHandoffError):
    step = "la lectura del certificado TLS"


class OperationCancelled(WminfoError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Operacion cancelada: {operation}")
