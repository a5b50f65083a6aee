import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pyVmomi import vim, vmodl

from .errors import OperationCancelled, ProjectionFailed
from .references import Kind, ObjectReference, PropertyRecord, ReferenceSet

PropertyList = Sequence[str]

DEFAULT_PROPERTIES: Dict[Kind, List[str]] = {
    Kind.DATACENTER: ["name"],
    Kind.DATASTORE: ["summary"],
    Kind.STORAGE_POD: ["summary"],
    Kind.NETWORK: ["summary"],
    Kind.DV_PORTGROUP: ["summary"],
    Kind.DV_SWITCH: ["summary"],
    Kind.VIRTUAL_MACHINE: ["name", "summary"],
    Kind.HOST: ["name"],
}

MAX_OBJECTS = 1000


def _with_name(properties: Iterable[str]) -> List[str]:
    path_set = list(dict.fromkeys(properties))
    if "name" not in path_set:
        path_set.insert(0, "name")
    return path_set


def _destroy_view(view, logger: logging.Logger) -> None:
    try:
        view.Destroy()
    except OperationCancelled:
        raise
    except Exception:
        logger.debug("No se pudo destruir el container view", exc_info=True)


def _retrieve(
    session, filter_spec, label: str, logger: logging.Logger
) -> List[Tuple[object, Dict[str, object]]]:
    collector = session.content.propertyCollector
    options = vmodl.query.PropertyCollector.RetrieveOptions(maxObjects=MAX_OBJECTS)

    results: List[Tuple[object, Dict[str, object]]] = []
    retrieved = session.call(
        f"RetrievePropertiesEx({label})",
        collector.RetrievePropertiesEx,
        [filter_spec],
        options,
    )

    while retrieved:
        for obj in retrieved.objects:
            prop_dict = {prop.name: prop.val for prop in obj.propSet or []}
            for missing in getattr(obj, "missingSet", None) or []:
                logger.debug(
                    "Propiedad %s no disponible para %s: %s",
                    missing.path,
                    obj.obj,
                    getattr(missing.fault, "msg", missing.fault),
                )
                prop_dict.setdefault(missing.path, None)
            results.append((obj.obj, prop_dict))
        if retrieved.token:
            retrieved = session.call(
                f"ContinueRetrievePropertiesEx({label})",
                collector.ContinueRetrievePropertiesEx,
                retrieved.token,
            )
        else:
            break

    return results


def fetch_view(
    session,
    container,
    kind: Kind,
    properties: PropertyList,
    recursive: bool = True,
    logger: Optional[logging.Logger] = None,
) -> List[PropertyRecord]:
    """Objetos de un tipo bajo `container`, aplanados con un ContainerView."""
    logger = logger or logging.getLogger("wminfo")
    content = session.content
    vim_type = kind.vim_type
    view = session.call(
        f"CreateContainerView({kind.value})",
        content.viewManager.CreateContainerView,
        container,
        [vim_type],
        recursive,
    )

    try:
        traversal_spec = vmodl.query.PropertyCollector.TraversalSpec(
            name="traverseView",
            path="view",
            skip=False,
            type=vim.view.ContainerView,
        )
        obj_spec = vmodl.query.PropertyCollector.ObjectSpec(
            obj=view,
            skip=True,
            selectSet=[traversal_spec],
        )
        prop_spec = vmodl.query.PropertyCollector.PropertySpec(
            type=vim_type,
            pathSet=_with_name(properties),
            all=False,
        )
        filter_spec = vmodl.query.PropertyCollector.FilterSpec(
            objectSet=[obj_spec],
            propSet=[prop_spec],
        )

        records: List[PropertyRecord] = []
        for obj, props in _retrieve(session, filter_spec, kind.value, logger):
            ref = ObjectReference.from_managed_object(obj)
            if ref is None:
                logger.debug("Tipo no soportado en la vista %s: %s", kind.value, obj)
                continue
            records.append(PropertyRecord(ref, props))
        return records
    finally:
        _destroy_view(view, logger)


def fetch_references(
    session,
    kind: Kind,
    refs: Sequence[ObjectReference],
    properties: PropertyList,
    logger: Optional[logging.Logger] = None,
) -> List[PropertyRecord]:
    """Una sola ronda (mas paginacion) para todas las referencias de un tipo."""
    logger = logger or logging.getLogger("wminfo")
    if not refs:
        return []

    obj_specs = [
        vmodl.query.PropertyCollector.ObjectSpec(obj=ref.to_managed_object(), skip=False)
        for ref in refs
    ]
    prop_spec = vmodl.query.PropertyCollector.PropertySpec(
        type=kind.vim_type,
        pathSet=_with_name(properties),
        all=False,
    )
    filter_spec = vmodl.query.PropertyCollector.FilterSpec(
        objectSet=obj_specs,
        propSet=[prop_spec],
    )

    by_moid: Dict[str, Dict[str, object]] = {}
    for obj, props in _retrieve(session, filter_spec, kind.value, logger):
        by_moid[obj._GetMoId()] = props

    records = []
    for ref in refs:
        props = by_moid.get(ref.id)
        if props is None:
            logger.debug("%s no devuelto por el PropertyCollector", ref)
            continue
        records.append(PropertyRecord(ref, props))
    return records


@dataclass
class Projection:
    records: Dict[Kind, List[PropertyRecord]] = field(default_factory=dict)
    errors: Dict[Kind, ProjectionFailed] = field(default_factory=dict)

    def get(self, kind: Kind) -> List[PropertyRecord]:
        return list(self.records.get(kind, []))

    def all_records(self) -> List[PropertyRecord]:
        return [record for records in self.records.values() for record in records]

    @property
    def ok(self) -> bool:
        return not self.errors


class PropertyProjector:
    def __init__(self, session, diagnostics=None, logger: Optional[logging.Logger] = None) -> None:
        self.session = session
        self.diagnostics = diagnostics
        self.logger = logger or logging.getLogger("wminfo")

    def _properties_for(
        self, kind: Kind, properties: Union[None, PropertyList, Mapping[Kind, PropertyList]]
    ) -> List[str]:
        if properties is None:
            return DEFAULT_PROPERTIES.get(kind, ["name"])
        if isinstance(properties, Mapping):
            return list(properties.get(kind) or DEFAULT_PROPERTIES.get(kind, ["name"]))
        return list(properties)

    def project(
        self,
        reference_set: ReferenceSet,
        properties: Union[None, PropertyList, Mapping[Kind, PropertyList]] = None,
        section: str = "projection",
    ) -> Projection:
        projection = Projection()
        for kind in reference_set.kinds():
            refs = reference_set.get(kind)
            if self.diagnostics is not None:
                self.diagnostics.add_attempt(section)
            try:
                records = fetch_references(
                    self.session,
                    kind,
                    refs,
                    self._properties_for(kind, properties),
                    logger=self.logger,
                )
            except OperationCancelled:
                raise
            except Exception as exc:
                error = ProjectionFailed(kind, exc)
                self.logger.warning("%s", error)
                if self.diagnostics is not None:
                    self.diagnostics.add_error(section, kind.value, error)
                projection.records[kind] = []
                projection.errors[kind] = error
                continue

            if self.diagnostics is not None:
                self.diagnostics.add_success(section)
            projection.records[kind] = records
        return projection
