from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest
from pyVmomi import vim

from wminfo.diagnostics import Diagnostics
from wminfo.discovery import ReferenceDiscovery
from wminfo.property_fetch import PropertyProjector
from wminfo.vmware_client import VCenterSession

CERT_DER = bytes(range(256)) * 3


def _key(obj):
    return (obj._wsdlName, obj._GetMoId())


class FakeInventory:
    """Arbol de inventario en memoria con objetos pyVmomi reales sin stub."""

    def __init__(self) -> None:
        self.root = vim.Folder("group-d1")
        self.objects = {_key(self.root): self.root}
        self.parents = {}
        self.props = {}
        self.failing = set()
        self.duplicate_results = False
        self.page_size = None

    def add(self, obj, parent=None, **props):
        key = _key(obj)
        self.objects[key] = obj
        self.parents[key] = _key(parent if parent is not None else self.root)
        self.props[key] = dict(props)
        return obj

    def remove(self, obj):
        self.props.pop(_key(obj), None)

    def descendants(self, container, recursive):
        container_key = _key(container)
        found = []
        for key, obj in self.objects.items():
            parent = self.parents.get(key)
            if parent is None:
                continue
            if parent == container_key:
                found.append(obj)
                continue
            if not recursive:
                continue
            while parent is not None:
                if parent == container_key:
                    found.append(obj)
                    break
                parent = self.parents.get(parent)
        return found


class FakeViewManager:
    def __init__(self) -> None:
        self.views = {}
        self.created = []

    def CreateContainerView(self, container, type, recursive):
        view = vim.view.ContainerView(f"session[1]view-{len(self.created) + 1}")
        self.views[view._GetMoId()] = (container, list(type), recursive)
        self.created.append(view)
        return view


class FakePropertyCollector:
    def __init__(self, inventory: FakeInventory, view_manager: FakeViewManager) -> None:
        self.inventory = inventory
        self.view_manager = view_manager
        self.calls = []
        self._pages = {}

    def _targets(self, filter_spec):
        targets = []
        for obj_spec in filter_spec.objectSet:
            obj = obj_spec.obj
            if isinstance(obj, vim.view.ContainerView):
                container, types, recursive = self.view_manager.views[obj._GetMoId()]
                targets.extend(
                    item
                    for item in self.inventory.descendants(container, recursive)
                    if isinstance(item, tuple(types))
                )
            else:
                targets.append(obj)
        return targets

    def RetrievePropertiesEx(self, specSet, options):
        filter_spec = specSet[0]
        prop_spec = filter_spec.propSet[0]
        vim_type = prop_spec.type
        path_set = list(prop_spec.pathSet)
        targets = [item for item in self._targets(filter_spec) if isinstance(item, vim_type)]
        self.calls.append(
            SimpleNamespace(
                type=vim_type._wsdlName,
                ids=[item._GetMoId() for item in targets],
                path_set=path_set,
            )
        )
        failing = {vim_type._wsdlName} | {f"{vim_type._wsdlName}.{path}" for path in path_set}
        if failing & self.inventory.failing:
            raise vim.fault.NoPermission(msg="Permission to perform this operation was denied.")

        objects = []
        for item in targets:
            key = _key(item)
            if key not in self.inventory.props:
                continue
            props = self.inventory.props[key]
            objects.append(
                SimpleNamespace(
                    obj=self.inventory.objects[key],
                    propSet=[
                        SimpleNamespace(name=path, val=props[path])
                        for path in path_set
                        if path in props
                    ],
                    missingSet=[
                        SimpleNamespace(path=path, fault=SimpleNamespace(msg="not set"))
                        for path in path_set
                        if path not in props
                    ],
                )
            )
        if self.inventory.duplicate_results:
            objects = objects + objects
        return self._page(objects)

    def ContinueRetrievePropertiesEx(self, token):
        return self._page(self._pages.pop(token))

    def _page(self, objects):
        size = self.inventory.page_size
        if not size or len(objects) <= size:
            return SimpleNamespace(objects=objects, token=None)
        token = f"token-{len(self._pages) + 1}"
        self._pages[token] = objects[size:]
        return SimpleNamespace(objects=objects[:size], token=token)


class FakeSessionManager:
    def __init__(self) -> None:
        self.issued = 0
        self.error = None
        self.empty = False

    def AcquireCloneTicket(self):
        if self.error is not None:
            raise self.error
        if self.empty:
            return ""
        self.issued += 1
        return f"cst-VCT-{self.issued:04d}"


def vm_summary(
    host,
    hostname="",
    ip="",
    power_state="poweredOn",
    annotation="",
    guest_id="ubuntu64Guest",
):
    return SimpleNamespace(
        config=SimpleNamespace(
            vmPathName="[ds-01] vm/vm.vmx",
            uuid="4203aaaa-bbbb-cccc-dddd-000000000001",
            guestFullName="Ubuntu Linux (64-bit)",
            memorySizeMB=4096,
            memoryReservation=0,
            numCpu=2,
            cpuReservation=0,
            guestId=guest_id,
            instanceUuid="5003aaaa-bbbb-cccc-dddd-000000000001",
            numEthernetCards=1,
            numVirtualDisks=1,
            template=False,
            managedBy=None,
            annotation=annotation,
        ),
        guest=SimpleNamespace(
            hostName=hostname,
            ipAddress=ip,
            guestId=guest_id,
            guestFullName="Ubuntu Linux (64-bit)",
            toolsRunningStatus="guestToolsRunning",
            toolsVersionStatus="guestToolsCurrent",
        ),
        runtime=SimpleNamespace(
            host=host,
            powerState=power_state,
            bootTime=None,
            paused=False,
            cleanPowerOff=True,
            suspendTime=None,
            memoryOverhead=52428800,
            maxMemoryUsage=4096,
            maxCpuUsage=4000,
        ),
        storage=SimpleNamespace(committed=10737418240, uncommitted=0, unshared=10737418240),
        quickStats=SimpleNamespace(
            overallCpuDemand=10,
            overallCpuUsage=12,
            balloonedMemory=0,
            compressedMemory=0,
            consumedOverheadMemory=40,
            guestMemoryUsage=200,
            hostMemoryUsage=1024,
            swappedMemory=0,
            sharedMemory=0,
            privateMemory=1000,
            uptimeSeconds=3600,
        ),
    )


def datastore_summary(name, capacity, free, ds_type="VMFS"):
    return SimpleNamespace(name=name, type=ds_type, capacity=capacity, freeSpace=free, accessible=True)


def build_inventory(with_second_datacenter=True) -> SimpleNamespace:
    inventory = FakeInventory()
    GB = 1024 ** 3

    dc1 = inventory.add(vim.Datacenter("datacenter-2"), name="DC1")
    vm_folder = inventory.add(vim.Folder("group-v3"), dc1, name="vm")
    prod_folder = inventory.add(vim.Folder("group-v50"), vm_folder, name="prod")
    host_folder = inventory.add(vim.Folder("group-h4"), dc1, name="host")
    cluster = inventory.add(vim.ClusterComputeResource("domain-c7"), host_folder, name="cluster-01")
    ds_folder = inventory.add(vim.Folder("group-s5"), dc1, name="datastore")
    net_folder = inventory.add(vim.Folder("group-n6"), dc1, name="network")

    host = inventory.add(vim.HostSystem("host-10"), cluster, name="esx01.example.com")

    ds1 = inventory.add(
        vim.Datastore("datastore-11"), ds_folder,
        name="ds-01", summary=datastore_summary("ds-01", 500 * GB, 200 * GB),
    )
    ds2 = inventory.add(
        vim.Datastore("datastore-12"), ds_folder,
        name="ds-02", summary=datastore_summary("ds-02", 1024 * GB, 512 * GB, "NFS"),
    )
    pod = inventory.add(
        vim.StoragePod("group-p20"), ds_folder,
        name="pod-gold", summary=SimpleNamespace(name="pod-gold", capacity=2048 * GB, freeSpace=1024 * GB),
    )
    ds3 = inventory.add(
        vim.Datastore("datastore-13"), pod,
        name="ds-03", summary=datastore_summary("ds-03", 2048 * GB, 1024 * GB),
    )

    network = inventory.add(
        vim.Network("network-30"), net_folder,
        name="VM Network", summary=SimpleNamespace(name="VM Network", accessible=True),
    )
    dvs = inventory.add(
        vim.dvs.VmwareDistributedVirtualSwitch("dvs-40"), net_folder,
        name="dvs-prod", summary=SimpleNamespace(name="dvs-prod", portgroupName=["pg-app", "dvs-prod-uplinks"]),
    )
    portgroup = inventory.add(
        vim.dvs.DistributedVirtualPortgroup("dvportgroup-41"), net_folder,
        name="pg-app", summary=SimpleNamespace(name="pg-app", accessible=False),
    )

    web = vim.VirtualMachine("vm-100")
    inventory.add(
        web, prod_folder,
        name="web01 (prod)",
        summary=vm_summary(host, hostname="web01.example.com", ip="10.0.0.11", annotation="owner:ops env:prod"),
        guest=None,
        config=None,
        datastore=[ds1, ds2],
        network=[network],
    )
    db = vim.VirtualMachine("vm-101")
    inventory.add(
        db, vm_folder,
        name="db01",
        summary=vm_summary(host, hostname="db01.example.com", ip="10.0.0.12", power_state="poweredOff"),
        guest=None,
        config=None,
        datastore=[ds2],
        network=[portgroup],
    )

    objects = SimpleNamespace(
        inventory=inventory,
        dc1=dc1,
        host=host,
        cluster=cluster,
        ds1=ds1,
        ds2=ds2,
        ds3=ds3,
        pod=pod,
        network=network,
        dvs=dvs,
        portgroup=portgroup,
        web=web,
        db=db,
    )

    if with_second_datacenter:
        dc2 = inventory.add(vim.Datacenter("datacenter-200"), name="DC2")
        dc2_ds_folder = inventory.add(vim.Folder("group-s201"), dc2, name="datastore")
        objects.dc2 = dc2
        objects.dc2_ds = inventory.add(
            vim.Datastore("datastore-210"), dc2_ds_folder,
            name="dr-01", summary=datastore_summary("dr-01", 100 * GB, 50 * GB),
        )
    return objects


def make_session(inventory: FakeInventory, host="vcenter.example.com", port=443) -> VCenterSession:
    view_manager = FakeViewManager()
    content = SimpleNamespace(
        rootFolder=inventory.root,
        viewManager=view_manager,
        propertyCollector=FakePropertyCollector(inventory, view_manager),
        sessionManager=FakeSessionManager(),
        about=SimpleNamespace(
            name="VMware vCenter Server",
            vendor="VMware, Inc.",
            version="8.0.2",
            build="22617221",
            osType="linux-x64",
            apiType="VirtualCenter",
            apiVersion="8.0.2.0",
            productLineId="vpx",
            instanceUuid="0f4c2b3e-1111-2222-3333-444455556666",
        ),
    )
    session = VCenterSession(
        service_instance=None,
        content=content,
        server=f"https://{host}/sdk",
        host=host,
        port=port,
    )
    session.peer_certificate = lambda timeout=10.0: CERT_DER
    return session


@pytest.fixture
def objects():
    return build_inventory()


@pytest.fixture
def inventory(objects):
    return objects.inventory


@pytest.fixture
def session(inventory):
    return make_session(inventory)


@pytest.fixture
def collector(session):
    return session.content.propertyCollector


@pytest.fixture
def diagnostics():
    return Diagnostics()


@pytest.fixture
def logger():
    return logging.getLogger("wminfo.tests")


@pytest.fixture
def projector(session, diagnostics, logger):
    return PropertyProjector(session, diagnostics=diagnostics, logger=logger)


@pytest.fixture
def discovery(session, logger):
    return ReferenceDiscovery(session, "DC1", logger=logger)


@pytest.fixture
def single_dc_session():
    return make_session(build_inventory(with_second_datacenter=False).inventory)
