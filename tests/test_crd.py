import pytest

from oakbridge.crd import (
    API_VERSION,
    Instance,
    InstanceNumberSet,
    OakestraJob,
    OakestraJobSpec,
    OakestraJobStatus,
)

REQUIRED_SPEC_KEYS = {
    "job_name",
    "application_ID",
    "application_name",
    "application_namespace",
    "code",
    "image",
    "microservice_ID",
    "microservice_name",
    "microservice_namespace",
    "next_instance_progressive_number",
    "port",
    "instance_list",
}


def full_instance():
    return {
        "instance_number": 1,
        "cluster_ID": "cluster-a",
        "cluster_location": "Munich",
        "status": "RUNNING",
        "status_detail": "detail",
        "cpu": 2,
        "memory": 100,
        "disk": 5,
        "last_modified_timestamp": "ts",
        "host_port": "50011",
        "host_IP": "10.0.0.4",
        "worker_ID": "worker",
    }


def full_resource():
    return {
        "apiVersion": "oakestra.oakestra.kubernetes/v1",
        "kind": "OakestraJob",
        "metadata": {"name": "svc", "namespace": "oakestra", "labels": {"ID": "abc"}},
        "spec": {
            "job_name": "app.ns.svc.ns",
            "added_files": ["f"],
            "application_ID": "app-id",
            "application_name": "app",
            "application_namespace": "ns",
            "bandwidth_in": 1,
            "bandwidth_out": 2,
            "cmd": ["run", "it"],
            "code": "c",
            "image": "nginx",
            "memory": 64,
            "microservice_ID": "abc",
            "microservice_name": "svc",
            "microservice_namespace": "ns",
            "next_instance_progressive_number": 3,
            "port": "80",
            "state": "ok",
            "storage": 7,
            "vcpus": 1,
            "vgpus": 1,
            "virtualization": "container",
            "vtpus": 1,
            "status": "RUNNING",
            "status_detail": "d",
            "instance_list": [full_instance()],
            "disk": 9,
            "environment": ["A=1"],
        },
        "status": {"instanceList": {"1": full_instance()}},
    }


def test_instance_round_trip():
    data = full_instance()
    assert Instance.from_dict(data).to_dict() == data


def test_instance_omits_empty_optional_fields():
    data = Instance(instance_number=0, cluster_id="c", cluster_location="l").to_dict()
    assert set(data) == {"instance_number", "cluster_ID", "cluster_location"}
    assert data["cluster_ID"] == "c"


def test_instance_parses_keys():
    instance = Instance.from_dict(full_instance())
    assert instance.host_ip == "10.0.0.4"
    assert instance.worker_id == "worker"
    assert instance.cluster_id == "cluster-a"


def test_instance_rejects_wrong_type():
    with pytest.raises(ValueError):
        Instance.from_dict({"instance_number": "one"})


def test_instance_rejects_non_object():
    with pytest.raises(ValueError):
        Instance.from_dict(["not", "an", "object"])


def test_empty_spec_keeps_only_required_keys():
    assert set(OakestraJobSpec().to_dict()) == REQUIRED_SPEC_KEYS


def test_spec_rejects_bad_list():
    with pytest.raises(ValueError):
        OakestraJobSpec.from_dict({"cmd": "not-a-list"})


def test_job_round_trip():
    data = full_resource()
    job = OakestraJob.from_dict(data)
    assert job.to_dict() == data
    assert job.name == "svc"
    assert job.namespace == "oakestra"
    assert job.spec.instance_list[0].instance_number == 1


def test_default_job_identifies_group():
    data = OakestraJob().to_dict()
    assert data["apiVersion"] == API_VERSION == "oakestra.oakestra.kubernetes/v1"
    assert data["kind"] == "OakestraJob"
    assert data["status"] == {"instanceList": {}}


def test_status_serializes_instance_set():
    job = OakestraJob()
    job.status.instance_list.add(Instance(instance_number=2, cluster_id="c"))
    status = job.to_dict()["status"]["instanceList"]
    assert list(status) == ["2"]
    assert status["2"]["instance_number"] == 2


def test_instance_number_set_add_remove():
    numbers = InstanceNumberSet()
    numbers.add(Instance(instance_number=3))
    numbers.add(Instance(instance_number=7))
    assert "3" in numbers and "7" in numbers
    numbers.remove("3")
    assert "3" not in numbers
    numbers.remove("missing")
    assert list(numbers) == ["7"]


def test_instance_number_set_replaces_same_number():
    numbers = InstanceNumberSet()
    numbers.add(Instance(instance_number=4, status="A"))
    numbers.add(Instance(instance_number=4, status="B"))
    assert len(numbers) == 1
    assert numbers["4"].status == "B"


def test_status_default_is_empty():
    assert len(OakestraJobStatus().instance_list) == 0