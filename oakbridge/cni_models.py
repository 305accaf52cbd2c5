"""Messages exchanged between the CNI plugin and the node network manager."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _field(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return kind()
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    if kind is str and not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class ConnectNetworkRequest:
    """Request to attach a pod's network namespace to the overlay."""

    network_namespace: str
    service_name: str
    instance_number: int
    pod_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "networkNamespace": self.network_namespace,
            "servicename": self.service_name,
            "instancenumber": self.instance_number,
            "podName": self.pod_name,
        }


@dataclass(frozen=True)
class DetachNetworkRequest:
    """Request to detach a service instance from the overlay."""

    service_name: str
    instance_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "serviceName": self.service_name,
            "instanceNumber": self.instance_number,
        }


@dataclass(frozen=True)
class ConnectNetworkResponse:
    """Network details the manager assigned to a new pod."""

    service_name: str = ""
    host_veth_name: str = ""
    host_bridge_name: str = ""
    host_bridge_ip: str = ""
    host_bridge_ip_mask: str = ""
    host_bridge_ipv6: str = ""
    host_bridge_ipv6_mask: str = ""
    container_veth_name: str = ""
    container_net_ns: str = ""
    container_ip: str = ""
    container_ipv6: str = ""
    mtu: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "ConnectNetworkResponse":
        data = _require_mapping(data)
        return cls(
            service_name=_field(data, "serviceName", str),
            host_veth_name=_field(data, "hostVethName", str),
            host_bridge_name=_field(data, "hostBridgeName", str),
            host_bridge_ip=_field(data, "hostBridgeIP", str),
            host_bridge_ip_mask=_field(data, "hostBridgeIPMask", str),
            host_bridge_ipv6=_field(data, "hostBridgeIPv6", str),
            host_bridge_ipv6_mask=_field(data, "hostBridgeIPv6Mask", str),
            container_veth_name=_field(data, "containerVethName", str),
            container_net_ns=_field(data, "containerNetNs", str),
            container_ip=_field(data, "containerIP", str),
            container_ipv6=_field(data, "containerIPv6", str),
            mtu=_field(data, "mtu", int),
        )


@dataclass(frozen=True)
class DetachNetworkResponse:
    """Name of the host-side veth to delete when a pod goes away."""

    veth_peer1_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "DetachNetworkResponse":
        data = _require_mapping(data)
        return cls(veth_peer1_name=_field(data, "vethPeer1Name", str))