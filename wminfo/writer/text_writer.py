import sys
from typing import Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

from ..references import Kind, ObjectReference
from ..units import format_bytes

PADDING = 2


def _fmt(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_table(
    headers: Sequence[str],
    rows: Iterable[Dict[str, object]],
    stream: TextIO,
    underline: bool = True,
) -> None:
    rows = list(rows)
    cells = [[_fmt(row.get(header, "")) for header in headers] for row in rows]
    widths = [len(header) for header in headers]
    for line in cells:
        for index, cell in enumerate(line):
            widths[index] = max(widths[index], len(cell))

    def emit(values: Sequence[str]) -> None:
        text = "".join(value.ljust(width + PADDING) for value, width in zip(values, widths))
        stream.write(text.rstrip() + "\n")

    emit(headers)
    if underline:
        emit(["-" * len(header) for header in headers])
    for line in cells:
        emit(line)


def render_pairs(pairs: Iterable[Tuple[str, object]], stream: TextIO, indent: str = "") -> None:
    pairs = [(label, _fmt(value)) for label, value in pairs]
    if not pairs:
        return
    width = max(len(label) for label, _ in pairs) + 1
    for label, value in pairs:
        stream.write(f"{indent}{(label + ':').ljust(width + PADDING)}{value}".rstrip() + "\n")


def _section(title: str, stream: TextIO, underline: bool = False) -> None:
    stream.write(f"{title}\n")
    if underline:
        stream.write("-" * len(title) + "\n")


def _ref_lines(view, kinds: Sequence[Kind]) -> List[str]:
    lines = []
    for ref in view.references:
        if ref.kind in kinds:
            lines.append(f"{ref.id}: {view.name_of(ref)}")
    return lines


def render_vm_detail(detail, stream: TextIO) -> None:
    view = detail.view
    record = view.record
    get = record.lookup

    _section("VM config", stream)
    config_pairs = [
        ("Name", record.name),
        ("Id", record.ref.id),
        ("Path", get("summary.config.vmPathName", "")),
        ("UUID", get("summary.config.uuid", "")),
        ("Guest", get("summary.config.guestFullName", "")),
        ("Memory", f"{get('summary.config.memorySizeMB', 0)} MB"),
        ("MemoryReservation", f"{get('summary.config.memoryReservation', 0)} MB"),
        ("CPU", f"{get('summary.config.numCpu', 0)} vCPU(s)"),
        ("CpuReservation", get("summary.config.cpuReservation", 0)),
        ("GuestId", get("summary.config.guestId", "")),
        ("InstanceUuid", get("summary.config.instanceUuid", "")),
        ("EthernetCards", get("summary.config.numEthernetCards", 0)),
        ("VirtualDisks", get("summary.config.numVirtualDisks", 0)),
        ("Template", bool(get("summary.config.template", False))),
    ]
    managed_by = get("summary.config.managedBy.extensionKey")
    if managed_by:
        config_pairs.append(("ManagedBy", managed_by))
    render_pairs(config_pairs, stream, indent="\t")
    stream.write("\n")

    _section("Guest", stream)
    render_pairs(
        [
            ("HostName", get("summary.guest.hostName", "")),
            ("IpAddress", get("summary.guest.ipAddress", "")),
            ("GuestId", get("summary.guest.guestId", "")),
            ("GuestFullName", get("summary.guest.guestFullName", "")),
            ("ToolsRunningStatus", get("summary.guest.toolsRunningStatus", "")),
            ("ToolsVersionStatus", get("summary.guest.toolsVersionStatus", "")),
        ],
        stream,
        indent="\t",
    )
    stream.write("\n")

    _section("Runtime env", stream)
    runtime_pairs = []
    host_ref = ObjectReference.from_managed_object(get("summary.runtime.host"))
    if host_ref is not None:
        runtime_pairs.append(("Host", view.name_of(host_ref)))
        runtime_pairs.append(("HostId", host_ref.id))
    boot_time = get("summary.runtime.bootTime")
    if boot_time is not None:
        runtime_pairs.append(("BootTime", boot_time))
    power_state = _fmt(get("summary.runtime.powerState"))
    runtime_pairs.append(("PowerState", power_state))
    if power_state != "poweredOn":
        runtime_pairs.append(("Paused", bool(get("summary.runtime.paused", False))))
        runtime_pairs.append(("CleanPowerOff", bool(get("summary.runtime.cleanPowerOff", False))))
        runtime_pairs.append(("SuspendTime", get("summary.runtime.suspendTime", "")))
    runtime_pairs.extend(
        [
            ("MemoryOverhead", format_bytes(get("summary.runtime.memoryOverhead", 0))),
            ("MaxMemoryUsage", f"{get('summary.runtime.maxMemoryUsage', 0)} MB"),
            ("MaxCpuUsage", get("summary.runtime.maxCpuUsage", 0)),
        ]
    )
    render_pairs(runtime_pairs, stream, indent="\t")
    networks = _ref_lines(view, (Kind.NETWORK,))
    if networks:
        stream.write("\tNetwork(s):\n")
        for line in networks:
            stream.write(f"\t\t{line}\n")
    portgroups = _ref_lines(view, (Kind.DV_PORTGROUP, Kind.DV_SWITCH))
    if portgroups:
        stream.write("\tVirtual Switch(s):\n")
        for line in portgroups:
            stream.write(f"\t\t{line}\n")
    stream.write("\n")

    _section("Storage", stream)
    render_pairs(
        [
            ("Uncommitted", format_bytes(get("summary.storage.uncommitted", 0))),
            ("Committed", format_bytes(get("summary.storage.committed", 0))),
            ("Unshared", format_bytes(get("summary.storage.unshared", 0))),
        ],
        stream,
        indent="\t",
    )
    stream.write("\tDatastores:\n")
    for line in _ref_lines(view, (Kind.DATASTORE,)):
        stream.write(f"\t\t{line}\n")
    stream.write("\n")

    _section("QuickStats", stream)
    render_pairs(
        [
            ("OverallCpuDemand", get("summary.quickStats.overallCpuDemand", 0)),
            ("OverallCpuUsage", get("summary.quickStats.overallCpuUsage", 0)),
            ("BalloonedMemory", f"{get('summary.quickStats.balloonedMemory', 0)} MB"),
            ("CompressedMemory", f"{get('summary.quickStats.compressedMemory', 0)} KB"),
            ("ConsumedOverheadMemory", f"{get('summary.quickStats.consumedOverheadMemory', 0)} MB"),
            ("GuestMemoryUsage", f"{get('summary.quickStats.guestMemoryUsage', 0)} MB"),
            ("HostMemoryUsage", f"{get('summary.quickStats.hostMemoryUsage', 0)} MB"),
            ("SwappedMemory", f"{get('summary.quickStats.swappedMemory', 0)} MB"),
            ("SharedMemory", f"{get('summary.quickStats.sharedMemory', 0)} MB"),
            ("PrivateMemory", f"{get('summary.quickStats.privateMemory', 0)} MB"),
            ("UptimeSeconds", f"{get('summary.quickStats.uptimeSeconds', 0)} s"),
        ],
        stream,
        indent="\t",
    )
    stream.write("\n")

    _section("Annotations", stream)
    render_pairs(detail.annotations, stream, indent="\t")
    stream.write("\n")

    _section("Console", stream)
    if detail.console is not None:
        stream.write(
            f"You have {detail.console.valid_for} seconds to open the URL, "
            "or the session will be terminated.\n"
        )
        stream.write(f"\t{detail.console.url}\n")
    else:
        stream.write(f"\tNo disponible: {detail.console_error or 'error desconocido'}\n")
    stream.write("\n")


def render_result(result, schemas: Dict[str, List[str]], table_order: List[str], stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    stream.write("\n")

    if result.about:
        _section("About", stream, underline=True)
        render_pairs(result.about.items(), stream)
        stream.write("\n")

    if result.command == "show":
        _section(f"VirtualMachine(s): {len(result.details)}", stream, underline=True)
        for detail in result.details:
            render_vm_detail(detail, stream)
    else:
        for table_name in table_order:
            if table_name not in result.tables:
                continue
            _section(table_name, stream, underline=True)
            render_table(schemas[table_name], result.tables[table_name], stream)
            stream.write("\n")

    if result.errors:
        _section(f"Errores parciales: {len(result.errors)}", stream, underline=True)
        for error in result.errors:
            stream.write(f"\t{error}\n")
        stream.write("\n")
