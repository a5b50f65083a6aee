from .context import ReportContext, ReportResult

ABOUT_FIELDS = [
    ("Name", "name"),
    ("Vendor", "vendor"),
    ("Version", "version"),
    ("Build", "build"),
    ("OS type", "osType"),
    ("API type", "apiType"),
    ("API version", "apiVersion"),
    ("Product ID", "productLineId"),
    ("UUID", "instanceUuid"),
]


def collect(context: ReportContext) -> ReportResult:
    about = context.session.content.about
    result = ReportResult(command="info")
    for label, attr in ABOUT_FIELDS:
        value = getattr(about, attr, None)
        result.about[label] = "" if value is None else str(value)

    refs = context.discovery.discover_datacenters("*")
    context.logger.debug("Datacenters encontrados: %s", len(refs))

    projection = context.projector.project(refs, ["name"], section="info")
    result.errors.extend(str(error) for error in projection.errors.values())
    result.tables["Datacenters"] = [
        {"Reference": str(record.ref), "Name": record.name}
        for record in projection.all_records()
    ]
    return result
