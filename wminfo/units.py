KB = 1024
MB = KB * 1024
GB = MB * 1024
TB = GB * 1024
PB = TB * 1024
EB = PB * 1024

_UNITS = [(EB, "EB"), (PB, "PB"), (TB, "TB"), (GB, "GB"), (MB, "MB"), (KB, "KB")]


def format_bytes(value) -> str:
    """1.5GB, 512.0MB, 10B... como las tablas originales de la herramienta."""
    if value is None or value == "":
        return ""
    size = int(value)
    for factor, suffix in _UNITS:
        if size >= factor:
            return f"{size / factor:.1f}{suffix}"
    return f"{size}B"
