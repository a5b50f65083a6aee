from .context import ReportContext, ReportResult
from .info import collect as collect_info
from .datastores import collect as collect_datastores
from .networks import collect as collect_networks
from .vms import collect as collect_vms
from .show import collect as collect_show

REPORTS = {
    "info": collect_info,
    "ds": collect_datastores,
    "net": collect_networks,
    "vms": collect_vms,
    "show": collect_show,
}

__all__ = ["ReportContext", "ReportResult", "REPORTS"]
