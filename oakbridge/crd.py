"""Custom resource types of the OakestraJob API group."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

GROUP = "oakestra.oakestra.kubernetes"
VERSION = "v1"
API_VERSION = f"{GROUP}/{VERSION}"
KIND = "OakestraJob"
PLURAL = "oakestrajobs"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field {key!r} must be a list of strings, got {value!r}")
    return list(value)


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


@dataclass(frozen=True)
class _Field:
    attr: str
    key: str
    load: Callable[[Mapping[str, Any], str], Any]
    omitempty: bool = False
    dump: Callable[[Any], Any] = _copy


def _load(table: tuple[_Field, ...], data: Mapping[str, Any]) -> dict[str, Any]:
    return {f.attr: f.load(data, f.key) for f in table}


def _dump(obj: Any, table: tuple[_Field, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in table:
        value = getattr(obj, f.attr)
        if f.omitempty and not value:
            continue
        out[f.key] = f.dump(value)
    return out


_INSTANCE_FIELDS = (
    _Field("instance_number", "instance_number", _int),
    _Field("cluster_id", "cluster_ID", _str),
    _Field("cluster_location", "cluster_location", _str),
    _Field("status", "status", _str, True),
    _Field("status_detail", "status_detail", _str, True),
    _Field("cpu", "cpu", _int, True),
    _Field("memory", "memory", _int, True),
    _Field("disk", "disk", _int, True),
    _Field("last_modified_timestamp", "last_modified_timestamp", _str, True),
    _Field("host_port", "host_port", _str, True),
    _Field("host_ip", "host_IP", _str, True),
    _Field("worker_id", "worker_ID", _str, True),
)


@dataclass
class Instance:
    """One instance of a job; the fields after ``cluster_location`` are set once scheduled."""

    instance_number: int = 0
    cluster_id: str = ""
    cluster_location: str = ""
    status: str = ""
    status_detail: str = ""
    cpu: int = 0
    memory: int = 0
    disk: int = 0
    last_modified_timestamp: str = ""
    host_port: str = ""
    host_ip: str = ""
    worker_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Instance":
        return cls(**_load(_INSTANCE_FIELDS, _mapping(data, "instance")))

    def to_dict(self) -> dict[str, Any]:
        return _dump(self, _INSTANCE_FIELDS)


def _instances(data: Mapping[str, Any], key: str) -> list[Instance]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be a list, got {value!r}")
    return [Instance.from_dict(item) for item in value]


def _dump_instances(instances: list[Instance]) -> list[dict[str, Any]]:
    return [instance.to_dict() for instance in instances]


_SPEC_FIELDS = (
    _Field("job_name", "job_name", _str),
    _Field("added_files", "added_files", _str_list, True),
    _Field("application_id", "application_ID", _str),
    _Field("application_name", "application_name", _str),
    _Field("application_namespace", "application_namespace", _str),
    _Field("bandwidth_in", "bandwidth_in", _int, True),
    _Field("bandwidth_out", "bandwidth_out", _int, True),
    _Field("cmd", "cmd", _str_list, True),
    _Field("code", "code", _str),
    _Field("image", "image", _str),
    _Field("memory", "memory", _int, True),
    _Field("microservice_id", "microservice_ID", _str),
    _Field("microservice_name", "microservice_name", _str),
    _Field("microservice_namespace", "microservice_namespace", _str),
    _Field("next_instance_progressive_number", "next_instance_progressive_number", _int),
    _Field("port", "port", _str),
    _Field("state", "state", _str, True),
    _Field("storage", "storage", _int, True),
    _Field("vcpus", "vcpus", _int, True),
    _Field("vgpus", "vgpus", _int, True),
    _Field("virtualization", "virtualization", _str, True),
    _Field("vtpus", "vtpus", _int, True),
    _Field("status", "status", _str, True),
    _Field("status_detail", "status_detail", _str, True),
    _Field("instance_list", "instance_list", _instances, False, _dump_instances),
    _Field("disk", "disk", _int, True),
    _Field("environment", "environment", _str_list, True),
)


@dataclass
class OakestraJobSpec:
    """Desired state of a service as sent by the root orchestrator."""

    job_name: str = ""
    added_files: list[str] = field(default_factory=list)
    application_id: str = ""
    application_name: str = ""
    application_namespace: str = ""
    bandwidth_in: int = 0
    bandwidth_out: int = 0
    cmd: list[str] = field(default_factory=list)
    code: str = ""
    image: str = ""
    memory: int = 0
    microservice_id: str = ""
    microservice_name: str = ""
    microservice_namespace: str = ""
    next_instance_progressive_number: int = 0
    port: str = ""
    state: str = ""
    storage: int = 0
    vcpus: int = 0
    vgpus: int = 0
    virtualization: str = ""
    vtpus: int = 0
    status: str = ""
    status_detail: str = ""
    instance_list: list[Instance] = field(default_factory=list)
    disk: int = 0
    environment: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "OakestraJobSpec":
        return cls(**_load(_SPEC_FIELDS, _mapping(data, "spec")))

    def to_dict(self) -> dict[str, Any]:
        return _dump(self, _SPEC_FIELDS)


class InstanceNumberSet(dict):
    """Instances keyed by the decimal string of their instance number."""

    def add(self, info: Instance) -> None:
        self[str(info.instance_number)] = info

    def remove(self, num: str) -> None:
        self.pop(num, None)


@dataclass
class OakestraJobStatus:
    """Observed state of an OakestraJob."""

    instance_list: InstanceNumberSet = field(default_factory=InstanceNumberSet)


def _status_from_dict(data: Any) -> OakestraJobStatus:
    data = _mapping(data, "status")
    instances = InstanceNumberSet()
    raw = data.get("instanceList")
    if raw is not None:
        for key, value in _mapping(raw, "instanceList").items():
            instances[str(key)] = Instance.from_dict(value)
    return OakestraJobStatus(instance_list=instances)


def _status_to_dict(status: OakestraJobStatus) -> dict[str, Any]:
    return {
        "instanceList": {key: value.to_dict() for key, value in status.instance_list.items()}
    }


@dataclass
class OakestraJob:
    """An OakestraJob custom resource."""

    api_version: str = API_VERSION
    kind: str = KIND
    metadata: dict[str, Any] = field(default_factory=dict)
    spec: OakestraJobSpec = field(default_factory=OakestraJobSpec)
    status: OakestraJobStatus = field(default_factory=OakestraJobStatus)

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "")

    @classmethod
    def from_dict(cls, data: Any) -> "OakestraJob":
        data = _mapping(data, "OakestraJob")
        metadata = data.get("metadata")
        return cls(
            api_version=_str(data, "apiVersion"),
            kind=_str(data, "kind"),
            metadata=dict(_mapping(metadata, "metadata")) if metadata is not None else {},
            spec=OakestraJobSpec.from_dict(data.get("spec") or {}),
            status=_status_from_dict(data.get("status") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.api_version:
            out["apiVersion"] = self.api_version
        if self.kind:
            out["kind"] = self.kind
        out["metadata"] = dict(self.metadata)
        out["spec"] = self.spec.to_dict()
        out["status"] = _status_to_dict(self.status)
        return out