import logging
import socket
import ssl
import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple
from urllib.parse import urlparse

from pyVim.connect import SmartConnect, Disconnect
from pyVmomi import vim

from .errors import OperationCancelled, describe_fault


def _parse_server(server: str) -> Tuple[str, int]:
    if "://" not in server:
        server = f"https://{server}"

    parsed = urlparse(server)
    host = parsed.hostname
    port = parsed.port

    if not host:
        raise ValueError(f"Servidor invalido: {server}")

    if port is None:
        port = 443 if parsed.scheme == "https" else 80

    return host, port


def _ssl_context(insecure: bool) -> Optional[ssl.SSLContext]:
    if not insecure:
        return None
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


@dataclass
class VCenterSession:
    service_instance: object
    content: object
    server: str
    host: str
    port: int
    insecure: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("wminfo"))

    def check_cancelled(self, operation: str) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelled(operation)

    def call(self, operation: str, func, *args, **kwargs):
        """Ejecuta una llamada remota respetando la cancelacion."""
        self.check_cancelled(operation)
        self.logger.debug("Llamada remota: %s", operation)
        return func(*args, **kwargs)

    def peer_certificate(self, timeout: float = 10.0) -> bytes:
        self.check_cancelled("peer_certificate")
        return peer_certificate(self.host, self.port, timeout=timeout)


def connect(
    server: str,
    user: str,
    password: str,
    insecure: bool,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> VCenterSession:
    host, port = _parse_server(server)

    try:
        service_instance = SmartConnect(
            host=host,
            user=user,
            pwd=password,
            port=port,
            sslContext=_ssl_context(insecure),
        )
    except Exception as exc:
        raise ConnectionError(
            f"No se pudo conectar a {host}:{port}: {describe_fault(exc)}"
        ) from exc

    if not isinstance(service_instance, vim.ServiceInstance):
        raise ConnectionError("No se obtuvo una instancia de servicio valida")

    return VCenterSession(
        service_instance=service_instance,
        content=service_instance.RetrieveContent(),
        server=server,
        host=host,
        port=port,
        insecure=insecure,
        cancel_event=cancel_event or threading.Event(),
        logger=logger or logging.getLogger("wminfo"),
    )


def disconnect(session: Optional[VCenterSession]) -> None:
    if session is not None:
        Disconnect(session.service_instance)


def peer_certificate(host: str, port: int, timeout: float = 10.0) -> bytes:
    """Certificado hoja (DER) que presenta el servidor en el handshake TLS.

    La cadena no se valida: la huella se usa justamente para que el
    cliente de consola verifique el servidor por su cuenta.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls_sock:
            der = tls_sock.getpeercert(binary_form=True)
    if not der:
        raise ssl.SSLError(f"{host}:{port} no presento certificado")
    return der
