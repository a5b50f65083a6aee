SCHEMAS = {
    "Datacenters": ["Reference", "Name"],
    "Datastores": ["Reference", "Name", "Type", "Capacity", "FreeSpace"],
    "Networks": ["Reference", "Name", "Accessible"],
    "Switches": ["Reference", "Name", "Accessible", "PortGroups"],
    "VirtualMachines": ["Reference", "Name", "HostName", "Guest", "PowerState", "IpAddress"],
    "VmDetails": [
        "Reference",
        "Name",
        "Host",
        "PowerState",
        "IpAddress",
        "Datastores",
        "Networks",
        "Console",
    ],
}

TABLE_ORDER = [
    "Datacenters",
    "Datastores",
    "Networks",
    "Switches",
    "VirtualMachines",
    "VmDetails",
]
