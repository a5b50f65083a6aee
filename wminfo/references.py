from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pyVmomi import vim


class Kind(str, Enum):
    DATACENTER = "Datacenter"
    DATASTORE = "Datastore"
    STORAGE_POD = "StoragePod"
    NETWORK = "Network"
    DV_SWITCH = "VmwareDistributedVirtualSwitch"
    DV_PORTGROUP = "DistributedVirtualPortgroup"
    VIRTUAL_MACHINE = "VirtualMachine"
    HOST = "HostSystem"

    @property
    def vim_type(self):
        return _VIM_TYPES[self]()

    @classmethod
    def from_wsdl(cls, wsdl_name: str) -> Optional["Kind"]:
        try:
            return cls(wsdl_name)
        except ValueError:
            return None


# pyVmomi resuelve los tipos de forma perezosa
_VIM_TYPES = {
    Kind.DATACENTER: lambda: vim.Datacenter,
    Kind.DATASTORE: lambda: vim.Datastore,
    Kind.STORAGE_POD: lambda: vim.StoragePod,
    Kind.NETWORK: lambda: vim.Network,
    Kind.DV_SWITCH: lambda: vim.dvs.VmwareDistributedVirtualSwitch,
    Kind.DV_PORTGROUP: lambda: vim.dvs.DistributedVirtualPortgroup,
    Kind.VIRTUAL_MACHINE: lambda: vim.VirtualMachine,
    Kind.HOST: lambda: vim.HostSystem,
}


@dataclass(frozen=True)
class ObjectReference:
    kind: Kind
    id: str

    @classmethod
    def from_managed_object(cls, obj) -> Optional["ObjectReference"]:
        """Devuelve None para tipos que no forman parte de Kind (p.ej. OpaqueNetwork)."""
        if obj is None:
            return None
        kind = Kind.from_wsdl(getattr(obj, "_wsdlName", ""))
        if kind is None:
            return None
        return cls(kind, obj._GetMoId())

    def to_managed_object(self, stub=None):
        return self.kind.vim_type(self.id, stub)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ReferenceSet:
    """References grouped by kind, insertion ordered and without duplicates."""

    def __init__(self, refs: Iterable[ObjectReference] = ()) -> None:
        self._by_kind: Dict[Kind, List[ObjectReference]] = {}
        self._seen = set()
        self.extend(refs)

    def add(self, ref: ObjectReference) -> bool:
        if ref in self._seen:
            return False
        self._seen.add(ref)
        self._by_kind.setdefault(ref.kind, []).append(ref)
        return True

    def extend(self, refs: Iterable[ObjectReference]) -> int:
        return sum(1 for ref in refs if self.add(ref))

    def get(self, kind: Kind) -> List[ObjectReference]:
        return list(self._by_kind.get(kind, []))

    def kinds(self) -> List[Kind]:
        return list(self._by_kind)

    def counts(self) -> Dict[Kind, int]:
        return {kind: len(refs) for kind, refs in self._by_kind.items()}

    def __contains__(self, ref: object) -> bool:
        return ref in self._seen

    def __iter__(self) -> Iterator[ObjectReference]:
        for refs in self._by_kind.values():
            yield from refs

    def __len__(self) -> int:
        return len(self._seen)

    def __repr__(self) -> str:
        counts = ", ".join(f"{kind.value}={count}" for kind, count in self.counts().items())
        return f"ReferenceSet({counts})"


@dataclass
class PropertyRecord:
    ref: ObjectReference
    props: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.props.get("name") or self.lookup("summary.name", "") or ""

    def lookup(self, path: str, default: Any = None) -> Any:
        """Resuelve "summary.config.uuid" aunque solo se haya pedido "summary"."""
        if path in self.props:
            value = self.props[path]
            return default if value is None else value

        parts = path.split(".")
        for index in range(len(parts) - 1, 0, -1):
            head = ".".join(parts[:index])
            if head not in self.props:
                continue
            value = self.props[head]
            for attr in parts[index:]:
                if value is None:
                    break
                value = getattr(value, attr, None)
            return default if value is None else value
        return default
