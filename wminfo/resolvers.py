import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from .property_fetch import PropertyProjector
from .references import Kind, ObjectReference, PropertyRecord, ReferenceSet

UNKNOWN = "unknown"

CROSS_REFERENCE_FIELDS = ("summary.runtime.host", "datastore", "network")


@dataclass(frozen=True)
class EntityView:
    record: PropertyRecord
    references: Tuple[ObjectReference, ...]
    hosts: Tuple[PropertyRecord, ...] = ()
    datastores: Tuple[PropertyRecord, ...] = ()
    networks: Tuple[PropertyRecord, ...] = ()
    portgroups: Tuple[PropertyRecord, ...] = ()
    switches: Tuple[PropertyRecord, ...] = ()
    names: Dict[ObjectReference, str] = field(default_factory=dict)
    failed_kinds: FrozenSet[Kind] = frozenset()

    @property
    def ref(self) -> ObjectReference:
        return self.record.ref

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def host(self) -> Optional[PropertyRecord]:
        return self.hosts[0] if self.hosts else None

    def name_of(self, ref: Optional[ObjectReference]) -> str:
        if ref is None:
            return ""
        return self.names.get(ref, UNKNOWN)

    def unresolved(self) -> List[ObjectReference]:
        return [ref for ref in self.references if ref not in self.names]

    def resolved(self) -> List[PropertyRecord]:
        return [
            *self.hosts,
            *self.datastores,
            *self.networks,
            *self.portgroups,
            *self.switches,
        ]


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class ReferenceAssembler:
    """Resuelve host, datastores y redes de una VM a registros con nombre."""

    def __init__(self, projector: PropertyProjector, logger: Optional[logging.Logger] = None) -> None:
        self.projector = projector
        self.logger = logger or logging.getLogger("wminfo")

    def collect_references(self, record: PropertyRecord) -> ReferenceSet:
        refs = ReferenceSet()
        for path in CROSS_REFERENCE_FIELDS:
            for obj in _as_list(record.lookup(path)):
                ref = ObjectReference.from_managed_object(obj)
                if ref is None:
                    self.logger.debug(
                        "Referencia %s de %s ignorada: %s", path, record.name, obj
                    )
                    continue
                refs.add(ref)
        return refs

    def assemble(self, record: PropertyRecord) -> EntityView:
        refs = self.collect_references(record)
        projection = self.projector.project(refs, ["name"], section="cross_references")

        by_ref: Dict[ObjectReference, PropertyRecord] = {}
        for resolved in projection.all_records():
            by_ref[resolved.ref] = resolved
        names = {ref: resolved.name for ref, resolved in by_ref.items()}

        def pick(kind: Kind) -> Tuple[PropertyRecord, ...]:
            return tuple(by_ref[ref] for ref in refs.get(kind) if ref in by_ref)

        if projection.errors:
            self.logger.warning(
                "Referencias sin resolver para %s: %s",
                record.name,
                ", ".join(kind.value for kind in projection.errors),
            )

        return EntityView(
            record=record,
            references=tuple(refs),
            hosts=pick(Kind.HOST),
            datastores=pick(Kind.DATASTORE),
            networks=pick(Kind.NETWORK),
            portgroups=pick(Kind.DV_PORTGROUP),
            switches=pick(Kind.DV_SWITCH),
            names=names,
            failed_kinds=frozenset(projection.errors),
        )
