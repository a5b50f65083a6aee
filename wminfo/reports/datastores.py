from ..discovery import DATASTORE_KINDS
from ..references import Kind
from ..units import format_bytes
from .context import ReportContext, ReportResult

DATASTORE_PROPERTIES = ["summary"]


def collect(context: ReportContext) -> ReportResult:
    result = ReportResult(command="ds")
    refs = context.discovery.discover(DATASTORE_KINDS, "*")
    if not refs:
        context.logger.info("No se encontraron datastores")

    projection = context.projector.project(refs, DATASTORE_PROPERTIES, section="ds")
    result.errors.extend(str(error) for error in projection.errors.values())

    rows = []
    for kind in DATASTORE_KINDS:
        for record in projection.get(kind):
            ds_type = record.lookup("summary.type", "") if kind is Kind.DATASTORE else "-"
            rows.append(
                {
                    "Reference": str(record.ref),
                    "Name": record.name,
                    "Type": ds_type,
                    "Capacity": format_bytes(record.lookup("summary.capacity", 0)),
                    "FreeSpace": format_bytes(record.lookup("summary.freeSpace", 0)),
                }
            )

    result.tables["Datastores"] = rows
    return result
