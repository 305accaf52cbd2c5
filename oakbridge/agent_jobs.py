"""Deployment requests from the root and the OakestraJob resources built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from oakbridge.crd import API_VERSION, KIND

RESOURCE_NAMESPACE = "oakestra"
SCHEDULED_STATUS = "KUBERNETES_SCHEDULED"
SCHEDULED_STATUS_DETAIL = "Kubernetes takes care of managing the status"

_INT16_MIN, _INT16_MAX = -(2**15), 2**15 - 1


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


@dataclass
class InstanceRequest:
    """An instance placement as sent by the root."""

    cluster_id: str = ""
    cluster_location: str = ""
    instance_number: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "InstanceRequest":
        data = _mapping(data, "instance")
        return cls(
            cluster_id=_str(data, "cluster_id"),
            cluster_location=_str(data, "cluster_location"),
            instance_number=_int(data, "instance_number"),
        )


@dataclass
class OakestraJsonRequest:
    """Body of a deployment request from the root system manager."""

    added_files: list[str] = field(default_factory=list)
    application_name: str = ""
    application_namespace: str = ""
    application_id: str = ""
    bandwidth_in: int = 0
    bandwidth_out: int = 0
    cmd: list[str] = field(default_factory=list)
    code: str = ""
    image: str = ""
    instance_list: list[InstanceRequest] = field(default_factory=list)
    job_name: str = ""
    memory: int = 0
    microservice_id: str = ""
    microservice_name: str = ""
    microservice_namespace: str = ""
    next_instance_progressive_number: int = 0
    port: str = ""
    state: str = ""
    status: str = ""
    status_detail: str = ""
    storage: int = 0
    vcpus: int = 0
    vgpus: int = 0
    disk: int = 0
    virtualization: str = ""
    vtpus: int = 0
    environment: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "OakestraJsonRequest":
        data = _mapping(data, "request")
        raw_instances = data.get("instance_list")
        if raw_instances is None:
            raw_instances = []
        elif not isinstance(raw_instances, list):
            raise ValueError(f"field 'instance_list' must be a list, got {raw_instances!r}")
        progressive = _int(data, "next_instance_progressive_number")
        if not _INT16_MIN <= progressive <= _INT16_MAX:
            raise ValueError(
                f"field 'next_instance_progressive_number' out of range: {progressive}"
            )
        return cls(
            added_files=_str_list(data, "added_files"),
            application_name=_str(data, "app_name"),
            application_namespace=_str(data, "app_ns"),
            application_id=_str(data, "applicationID"),
            bandwidth_in=_int(data, "bandwidth_in"),
            bandwidth_out=_int(data, "bandwidth_out"),
            cmd=_str_list(data, "cmd"),
            code=_str(data, "code"),
            image=_str(data, "image"),
            instance_list=[InstanceRequest.from_dict(item) for item in raw_instances],
            job_name=_str(data, "job_name"),
            memory=_int(data, "memory"),
            microservice_id=_str(data, "microserviceID"),
            microservice_name=_str(data, "microservice_name"),
            microservice_namespace=_str(data, "microservice_namespace"),
            next_instance_progressive_number=progressive,
            port=_str(data, "port"),
            state=_str(data, "state"),
            status=_str(data, "status"),
            status_detail=_str(data, "status_detail"),
            storage=_int(data, "storage"),
            vcpus=_int(data, "vcpus"),
            vgpus=_int(data, "vgpus"),
            disk=_int(data, "disk"),
            virtualization=_str(data, "virtualization"),
            vtpus=_int(data, "vtpus"),
            environment=_str_list(data, "environment"),
        )


@dataclass
class JobMetadata:
    name: str = ""
    namespace: str = ""


@dataclass
class AgentJobSpec:
    """Job specification as held by the agent before it becomes a resource."""

    job_name: str = ""
    added_files: list[str] = field(default_factory=list)
    application_name: str = ""
    application_namespace: str = ""
    application_id: str = ""
    bandwidth_in: int = 0
    bandwidth_out: int = 0
    cmd: list[str] = field(default_factory=list)
    code: str = ""
    image: str = ""
    instance_list: list[InstanceRequest] = field(default_factory=list)
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
    disk: int = 0
    target_node: str = ""
    vm_images: list[str] = field(default_factory=list)
    arch: list[str] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    environment: list[str] = field(default_factory=list)
    sla_violation_strategy: str = ""


@dataclass
class AgentJob:
    api_version: str = API_VERSION
    kind: str = KIND
    metadata: JobMetadata = field(default_factory=JobMetadata)
    spec: AgentJobSpec = field(default_factory=AgentJobSpec)


def job_from_request(request: OakestraJsonRequest) -> AgentJob:
    """Build the job the agent deploys for a root request."""
    return AgentJob(
        api_version=API_VERSION,
        kind=KIND,
        metadata=JobMetadata(name=request.microservice_name, namespace=RESOURCE_NAMESPACE),
        spec=AgentJobSpec(
            job_name=request.job_name,
            application_name=request.application_name,
            application_namespace=request.application_namespace,
            application_id=request.application_id,
            added_files=list(request.added_files),
            bandwidth_in=request.bandwidth_in,
            bandwidth_out=request.bandwidth_out,
            cmd=list(request.cmd),
            image=request.image,
            memory=request.memory,
            port=request.port,
            code=request.code,
            microservice_id=request.microservice_id,
            microservice_name=request.microservice_name,
            microservice_namespace=request.microservice_namespace,
            next_instance_progressive_number=request.next_instance_progressive_number,
            state=request.state,
            status=SCHEDULED_STATUS,
            status_detail=SCHEDULED_STATUS_DETAIL,
            storage=request.storage,
            vcpus=request.vcpus,
            vgpus=request.vgpus,
            virtualization=request.virtualization,
            vtpus=request.vtpus,
            disk=request.disk,
            instance_list=list(request.instance_list),
            environment=list(request.environment),
        ),
    )


def instances_to_resource(instances: Iterable[InstanceRequest]) -> list[dict[str, Any]]:
    """Instance entries in the form stored in the resource's spec."""
    return [
        {
            "instance_number": instance.instance_number,
            "cluster_location": instance.cluster_location,
            "cluster_ID": instance.cluster_id,
        }
        for instance in instances
    ]


def job_to_resource(job: AgentJob) -> dict[str, Any]:
    """The OakestraJob resource object to submit to the API server."""
    spec = job.spec
    return {
        "apiVersion": API_VERSION,
        "kind": KIND,
        "metadata": {
            "name": spec.microservice_name,
            "namespace": job.metadata.namespace,
            "labels": {"ID": spec.microservice_id},
        },
        "spec": {
            "job_name": spec.job_name,
            "added_files": list(spec.added_files),
            "application_ID": spec.application_id,
            "application_name": spec.application_name,
            "application_namespace": spec.application_namespace,
            "bandwidth_in": spec.bandwidth_in,
            "bandwidth_out": spec.bandwidth_out,
            "cmd": list(spec.cmd),
            "code": spec.code,
            "image": spec.image,
            "memory": spec.memory,
            "microservice_ID": spec.microservice_id,
            "microservice_name": spec.microservice_name,
            "microservice_namespace": spec.microservice_namespace,
            "next_instance_progressive_number": spec.next_instance_progressive_number,
            "port": spec.port,
            "state": spec.state,
            "storage": spec.storage,
            "vcpus": spec.vcpus,
            "vgpus": spec.vgpus,
            "virtualization": spec.virtualization,
            "vtpus": spec.vtpus,
            "status": spec.status,
            "status_detail": spec.status_detail,
            "disk": spec.disk,
            "instance_list": instances_to_resource(spec.instance_list),
            "environment": list(spec.environment),
        },
    }


def label_selector(label: str, value: str) -> str:
    return f"{label}={value}"