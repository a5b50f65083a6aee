"""Entrega de consola remota.

Tres piezas independientes por VM: un ticket clonado de la sesion actual
(autentica al cliente), la huella del certificado TLS del servidor
(autentica al servidor) y el host del servicio. Con ellas se compone la URL
que abre el cliente de consola sin volver a pedir credenciales.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from .errors import CloneFailed, FingerprintFailed, OperationCancelled
from .references import ObjectReference

CONSOLE_PORT = 7331
# convencion del cliente de consola, el servidor no la garantiza
TICKET_VALIDITY_SECONDS = 60
FINGERPRINT_ALGORITHM = "sha1"

CONSOLE_URL_TEMPLATE = (
    "http://{service_host}:{port}/console/?vmId={vm_id}&vmName={vm_name}"
    "&host={inventory_host}&sessionTicket={ticket}&thumbprint={thumbprint}"
)


@dataclass(frozen=True)
class ConsoleTicket:
    session_token: str
    tls_fingerprint: str
    service_host: str


@dataclass(frozen=True)
class ConsoleAccess:
    ticket: ConsoleTicket
    url: str
    valid_for: int = TICKET_VALIDITY_SECONDS


def format_fingerprint(der: bytes, algorithm: str = FINGERPRINT_ALGORITHM) -> str:
    digest = hashlib.new(algorithm, der).hexdigest().upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def build_console_url(
    ticket: ConsoleTicket,
    vm_id: str,
    vm_name: str,
    inventory_host: str,
    port: int = CONSOLE_PORT,
) -> str:
    return CONSOLE_URL_TEMPLATE.format(
        service_host=ticket.service_host,
        port=port,
        vm_id=quote(vm_id, safe=""),
        vm_name=quote(vm_name, safe=""),
        inventory_host=quote(inventory_host, safe=":"),
        ticket=quote(ticket.session_token, safe=""),
        thumbprint=quote(ticket.tls_fingerprint, safe=":"),
    )


class ConsoleHandoff:
    def __init__(
        self,
        session,
        port: int = CONSOLE_PORT,
        algorithm: str = FINGERPRINT_ALGORITHM,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.port = port
        self.algorithm = algorithm
        self.logger = logger or logging.getLogger("wminfo")

    def clone_session(self) -> str:
        session_manager = self.session.content.sessionManager
        try:
            token = self.session.call(
                "AcquireCloneTicket", session_manager.AcquireCloneTicket
            )
        except OperationCancelled:
            raise
        except Exception as exc:
            raise CloneFailed(exc) from exc
        if not token:
            raise CloneFailed(ValueError("ticket vacio"))
        self.logger.debug("Sesion clonada en %s", self.session.host)
        return token

    def fingerprint(self) -> str:
        self.logger.debug("Obteniendo huella TLS de %s:%s", self.session.host, self.session.port)
        try:
            der = self.session.peer_certificate()
        except OperationCancelled:
            raise
        except Exception as exc:
            raise FingerprintFailed(exc) from exc
        fingerprint = format_fingerprint(der, self.algorithm)
        self.logger.debug("Huella TLS de %s: %s", self.session.host, fingerprint)
        return fingerprint

    def service_host(self) -> str:
        host = self.session.host
        if ":" in host:
            return f"[{host}]"
        return host

    def inventory_host(self) -> str:
        if self.session.port == 443:
            return self.service_host()
        return f"{self.service_host()}:{self.session.port}"

    def issue(self, vm_ref: ObjectReference, vm_name: str) -> ConsoleAccess:
        """Un ticket nuevo por VM: el ticket clonado solo sirve una vez."""
        ticket = ConsoleTicket(
            session_token=self.clone_session(),
            tls_fingerprint=self.fingerprint(),
            service_host=self.service_host(),
        )
        url = build_console_url(
            ticket,
            vm_id=vm_ref.id,
            vm_name=vm_name,
            inventory_host=self.inventory_host(),
            port=self.port,
        )
        return ConsoleAccess(ticket=ticket, url=url)
