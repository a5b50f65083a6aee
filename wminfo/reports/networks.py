from ..discovery import NETWORK_KINDS
from ..references import Kind
from .context import ReportContext, ReportResult, text_bool

NETWORK_PROPERTIES = ["summary"]


def collect(context: ReportContext) -> ReportResult:
    result = ReportResult(command="net")
    refs = context.discovery.discover(NETWORK_KINDS, "*")
    if not refs:
        context.logger.info("No se encontraron redes")

    projection = context.projector.project(refs, NETWORK_PROPERTIES, section="net")
    result.errors.extend(str(error) for error in projection.errors.values())

    networks = []
    for kind in (Kind.NETWORK, Kind.DV_PORTGROUP):
        for record in projection.get(kind):
            networks.append(
                {
                    "Reference": str(record.ref),
                    "Name": record.lookup("summary.name") or record.name,
                    "Accessible": text_bool(record.lookup("summary.accessible")),
                }
            )

    switches = []
    for record in projection.get(Kind.DV_SWITCH):
        portgroups = record.lookup("summary.portgroupName") or []
        switches.append(
            {
                "Reference": str(record.ref),
                "Name": record.name,
                "Accessible": "-",
                "PortGroups": ", ".join(portgroups),
            }
        )

    result.tables["Networks"] = networks
    result.tables["Switches"] = switches
    return result
