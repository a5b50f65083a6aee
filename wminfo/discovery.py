import fnmatch
import logging
from typing import Iterable, List, Optional

from .errors import DiscoveryFailed, ScopeNotFound, WminfoError
from .property_fetch import fetch_view
from .references import Kind, ObjectReference, PropertyRecord, ReferenceSet

DATASTORE_KINDS = (Kind.DATASTORE, Kind.STORAGE_POD)
NETWORK_KINDS = (Kind.NETWORK, Kind.DV_PORTGROUP, Kind.DV_SWITCH)
VM_KINDS = (Kind.VIRTUAL_MACHINE,)


def _view_kinds(kinds: Iterable[Kind]) -> List[Kind]:
    """Quita los tipos que ya cubre la vista de un supertipo (DVPG dentro de Network)."""
    requested = list(dict.fromkeys(kinds))
    result = []
    for kind in requested:
        covered = any(
            other is not kind and issubclass(kind.vim_type, other.vim_type)
            for other in requested
        )
        if not covered:
            result.append(kind)
    return result


class ReferenceDiscovery:
    def __init__(
        self,
        session,
        datacenter: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.datacenter = datacenter or None
        self.logger = logger or logging.getLogger("wminfo")
        self._scope: Optional[ObjectReference] = None

    def _list_datacenters(self) -> List[PropertyRecord]:
        try:
            return fetch_view(
                self.session,
                self.session.content.rootFolder,
                Kind.DATACENTER,
                ["name"],
                logger=self.logger,
            )
        except WminfoError:
            raise
        except Exception as exc:
            raise DiscoveryFailed("la busqueda de datacenters", exc) from exc

    def find_datacenter(self) -> ObjectReference:
        if self._scope is not None:
            return self._scope

        datacenters = self._list_datacenters()
        if self.datacenter:
            matches = [dc for dc in datacenters if dc.name == self.datacenter]
            if not matches:
                raise ScopeNotFound(self.datacenter)
        else:
            matches = datacenters
            if not matches:
                raise ScopeNotFound(None, "el inventario no tiene datacenters")
            if len(matches) > 1:
                raise ScopeNotFound(
                    None,
                    f"hay {len(matches)} datacenters, indique uno con --dc",
                )

        self._scope = matches[0].ref
        self.logger.debug("Usando datacenter %s (%s)", matches[0].name, self._scope)
        return self._scope

    def discover_datacenters(self, pattern: str = "*") -> ReferenceSet:
        pattern = pattern or "*"
        self.logger.debug("Buscando datacenters con filtro: %s", pattern)
        found = ReferenceSet()
        for record in self._list_datacenters():
            if fnmatch.fnmatchcase(record.name, pattern):
                found.add(record.ref)
        return found

    def discover(self, kinds: Iterable[Kind], pattern: str = "*") -> ReferenceSet:
        """Referencias de los tipos pedidos dentro del datacenter.

        Cada tipo se recorre con un ContainerView recursivo (carpetas,
        clusters, resource pools) y se filtra por nombre con `pattern`.
        """
        kinds = list(kinds)
        pattern = pattern or "*"
        scope = self.find_datacenter()
        self.logger.debug(
            "Buscando %s con filtro: %s",
            ", ".join(kind.value for kind in kinds),
            pattern,
        )

        found = ReferenceSet()
        for view_kind in _view_kinds(kinds):
            try:
                records = fetch_view(
                    self.session,
                    scope.to_managed_object(),
                    view_kind,
                    ["name"],
                    logger=self.logger,
                )
            except WminfoError:
                raise
            except Exception as exc:
                raise DiscoveryFailed(f"la busqueda de {view_kind.value}", exc) from exc

            for record in records:
                if record.ref.kind not in kinds:
                    continue
                if not fnmatch.fnmatchcase(record.name, pattern):
                    continue
                if not found.add(record.ref):
                    self.logger.debug("Referencia duplicada ignorada: %s", record.ref)

        self.logger.debug("Referencias encontradas: %r", found)
        return found

    def discover_datastores(self, pattern: str = "*") -> ReferenceSet:
        return self.discover(DATASTORE_KINDS, pattern)

    def discover_networks(self, pattern: str = "*") -> ReferenceSet:
        return self.discover(NETWORK_KINDS, pattern)

    def discover_vms(self, pattern: str = "*") -> ReferenceSet:
        return self.discover(VM_KINDS, pattern)
