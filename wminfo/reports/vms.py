from ..references import Kind
from .context import ReportContext, ReportResult

VM_PROPERTIES = ["name", "summary"]


def short_name(name: str) -> str:
    return name.split(" ", 1)[0] if name else ""


def collect(context: ReportContext) -> ReportResult:
    result = ReportResult(command="vms")
    refs = context.discovery.discover_vms("*")
    if not refs:
        context.logger.info("No se encontraron maquinas virtuales")

    projection = context.projector.project(refs, VM_PROPERTIES, section="vms")
    result.errors.extend(str(error) for error in projection.errors.values())

    rows = []
    for record in projection.get(Kind.VIRTUAL_MACHINE):
        power_state = record.lookup("summary.runtime.powerState")
        rows.append(
            {
                "Reference": record.ref.id,
                "Name": short_name(record.name),
                "HostName": record.lookup("summary.guest.hostName", ""),
                "Guest": record.lookup("summary.guest.guestId", ""),
                "PowerState": str(power_state) if power_state is not None else "",
                "IpAddress": record.lookup("summary.guest.ipAddress", ""),
            }
        )

    result.tables["VirtualMachines"] = rows
    return result
