import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..console import ConsoleAccess, ConsoleHandoff
from ..errors import ConsoleHandoffError
from ..references import Kind, PropertyRecord
from ..resolvers import EntityView, ReferenceAssembler
from .context import ReportContext, ReportResult

DETAIL_PROPERTIES = ["name", "summary", "guest", "config", "datastore", "network"]


@dataclass(frozen=True)
class VmDetail:
    view: EntityView
    console: Optional[ConsoleAccess] = None
    console_error: Optional[str] = None
    annotations: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


def parse_annotations(annotation: Optional[str]) -> Tuple[Tuple[str, str], ...]:
    """Las notas de la VM se usan como pares key:value separados por blancos."""
    pairs = []
    for token in (annotation or "").split():
        key, _, value = token.partition(":")
        pairs.append((key, value))
    return tuple(pairs)


def matches_selector(record: PropertyRecord, selector: str) -> bool:
    wanted = selector.strip().lower()
    if not wanted:
        return True
    if record.ref.id == selector.strip() or record.ref.id.lower() == wanted:
        return True
    if record.name.lower() == wanted:
        return True
    hostname = record.lookup("summary.guest.hostName") or ""
    ip_address = record.lookup("summary.guest.ipAddress") or ""
    return wanted in (hostname.lower(), ip_address.lower())


class VmDetailReport:
    def __init__(
        self,
        discovery,
        projector,
        assembler: ReferenceAssembler,
        handoff: ConsoleHandoff,
        diagnostics,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.discovery = discovery
        self.projector = projector
        self.assembler = assembler
        self.handoff = handoff
        self.diagnostics = diagnostics
        self.logger = logger or logging.getLogger("wminfo")

    def find(self, selector: Optional[str]) -> List[PropertyRecord]:
        refs = self.discovery.discover_vms("*")
        self.logger.debug("VMs encontradas: %s", len(refs))
        if not refs:
            return []
        projection = self.projector.project(refs, DETAIL_PROPERTIES, section="show")
        # sin las VMs no hay detalle que filtrar: no es un "sin coincidencias"
        if Kind.VIRTUAL_MACHINE in projection.errors:
            raise projection.errors[Kind.VIRTUAL_MACHINE]
        records = projection.get(Kind.VIRTUAL_MACHINE)
        if not selector:
            return records
        return [record for record in records if matches_selector(record, selector)]

    def detail(self, record: PropertyRecord) -> VmDetail:
        view = self.assembler.assemble(record)

        self.diagnostics.add_attempt("console")
        console = None
        console_error = None
        try:
            console = self.handoff.issue(record.ref, record.name)
            self.diagnostics.add_success("console")
        except ConsoleHandoffError as exc:
            console_error = str(exc)
            self.diagnostics.add_error("console", str(record.ref), exc)
            self.logger.error("Consola no disponible para %s: %s", record.name, exc)

        return VmDetail(
            view=view,
            console=console,
            console_error=console_error,
            annotations=parse_annotations(record.lookup("summary.config.annotation")),
        )

    def run(self, selector: Optional[str]) -> List[VmDetail]:
        return [self.detail(record) for record in self.find(selector)]


def _detail_row(detail: VmDetail) -> dict:
    view = detail.view
    record = view.record
    host = view.host
    power_state = record.lookup("summary.runtime.powerState")
    return {
        "Reference": record.ref.id,
        "Name": record.name,
        "Host": host.name if host else "",
        "PowerState": str(power_state) if power_state is not None else "",
        "IpAddress": record.lookup("summary.guest.ipAddress", ""),
        "Datastores": ", ".join(ds.name for ds in view.datastores),
        "Networks": ", ".join(net.name for net in (*view.networks, *view.portgroups)),
        "Console": detail.console.url if detail.console else "",
    }


def collect(context: ReportContext) -> ReportResult:
    session = context.session
    config = context.config
    report = VmDetailReport(
        discovery=context.discovery,
        projector=context.projector,
        assembler=ReferenceAssembler(context.projector, logger=context.logger),
        handoff=ConsoleHandoff(session, port=config.console_port, logger=context.logger),
        diagnostics=context.diagnostics,
        logger=context.logger,
    )

    details = report.run(config.selector)
    result = ReportResult(command="show", details=details)
    result.errors.extend(detail.console_error for detail in details if detail.console_error)
    result.tables["VmDetails"] = [_detail_row(detail) for detail in details]
    return result
