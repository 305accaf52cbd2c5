import base64
import copy
import json

import pytest
import requests
import responses

from oakbridge.webhook import (
    ClusterInfo,
    WebhookOakestraNetwork,
    create_app,
    json_patch,
    system_job_id,
)

ROOT = "http://10.0.0.1:10099"


def _webhook():
    return WebhookOakestraNetwork(ClusterInfo("cluster-1", ROOT), requests.Session())


def _pod(port="8080", containers=True):
    pod = {
        "metadata": {"name": "web", "namespace": "default", "annotations": {}},
        "spec": {"containers": [{"name": "c", "image": "nginx:latest"}] if containers else []},
    }
    if port is not None:
        pod["metadata"]["annotations"]["oakestra.io/port"] = port
    return pod


def _unescape(token):
    return token.replace("~1", "/").replace("~0", "~")


def _apply(doc, ops):
    doc = copy.deepcopy(doc)
    for op in ops:
        if op["path"] == "":
            doc = copy.deepcopy(op["value"])
            continue
        *parents, last = [_unescape(t) for t in op["path"].split("/")[1:]]
        target = doc
        for token in parents:
            target = target[token]
        if op["op"] == "remove":
            del target[last]
        else:
            target[last] = copy.deepcopy(op["value"])
    return doc


def test_system_job_id_shape_and_determinism():
    first = system_job_id("web")
    assert len(first) == 24
    assert all(ch in "0123456789abcdef" for ch in first)
    assert system_job_id("web") == first
    assert system_job_id("other") != first


def test_json_patch_escapes_slash_in_key():
    original = {"metadata": {"annotations": {}}}
    modified = {"metadata": {"annotations": {"k8s.v1.cni.cncf.io/networks": "oakestra-cni"}}}
    assert json_patch(original, modified) == [
        {
            "op": "add",
            "path": "/metadata/annotations/k8s.v1.cni.cncf.io~1networks",
            "value": "oakestra-cni",
        }
    ]


def test_json_patch_identical_is_empty():
    doc = {"a": [1, 2], "b": {"c": "d"}}
    assert json_patch(doc, copy.deepcopy(doc)) == []


def test_json_patch_remove_and_replace():
    ops = json_patch({"a": 1, "b": 2}, {"a": 3})
    assert {"op": "remove", "path": "/b"} in ops
    assert {"op": "replace", "path": "/a", "value": 3} in ops
    assert len(ops) == 2


@pytest.mark.parametrize(
    "original, modified",
    [
        ({"x": {"y": [1, 2]}}, {"x": {"y": [1, 2, 3]}, "z": True}),
        ({"a/b": 1, "t~": {"k": "v"}}, {"t~": {"k": "w"}}),
        ({"a": 1}, [1, 2]),
    ],
)
def test_json_patch_reproduces_modified(original, modified):
    assert _apply(original, json_patch(original, modified)) == modified


@pytest.mark.parametrize(
    "port, expected", [("8080", True), ("", False), (None, False)]
)
def test_has_oakestra_port_annotation(port, expected):
    assert _webhook().has_oakestra_port_annotation(_pod(port)) is expected


def test_dry_run_is_allowed_without_calls():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        result = _webhook().handle(
            {"uid": "u1", "dryRun": True, "operation": "CREATE", "object": _pod()}
        )
        assert len(rsps.calls) == 0
    assert result["allowed"] is True
    assert result["uid"] == "u1"
    assert result["status"]["message"] == "DryRun requested, admission allowed"


def test_create_with_port_registers_and_patches():
    job_id = system_job_id("web")
    pod = _pod()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, ROOT + "/api/net/service/deploy", json={})
        rsps.add(responses.POST, ROOT + "/api/net/instance/deploy", json={})
        result = _webhook().handle({"uid": "u2", "operation": "CREATE", "object": pod})
        register = json.loads(rsps.calls[0].request.body)
        deploy = json.loads(rsps.calls[1].request.body)

    assert register["system_job_id"] == job_id
    descriptor = register["deployment_descriptor"]
    assert descriptor["applicationID"] == job_id
    assert descriptor["app_name"] == "web"
    assert descriptor["app_ns"] == "default"
    assert descriptor["image"] == "nginx:latest"
    assert descriptor["virtualization"] == "docker"
    assert descriptor["instance_list"] == []
    assert deploy == {"system_job_id": job_id, "instance_number": 0, "cluster_id": "cluster-1"}

    assert result["allowed"] is True
    assert result["patchType"] == "JSONPatch"
    ops = json.loads(base64.b64decode(result["patch"]))
    patched = _apply(pod, ops)
    annotations = patched["metadata"]["annotations"]
    assert annotations["k8s.v1.cni.cncf.io/networks"] == "oakestra-cni"
    assert annotations["systemJobID"] == job_id
    assert annotations["oakestra.io/status"] == "deployed"
    assert pod["metadata"]["annotations"] == {"oakestra.io/port": "8080"}


def test_create_without_port_leaves_pod_alone():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        result = _webhook().handle({"uid": "u3", "operation": "CREATE", "object": _pod(None)})
        assert len(rsps.calls) == 0
    assert result["allowed"] is True
    assert "patch" not in result


def test_create_without_object_is_rejected():
    result = _webhook().handle({"uid": "u4", "operation": "CREATE"})
    assert result["allowed"] is False
    assert result["status"]["code"] == 400


def test_create_pod_without_containers_errors():
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        result = _webhook().handle(
            {"uid": "u5", "operation": "CREATE", "object": _pod(containers=False)}
        )
    assert result["allowed"] is False
    assert result["status"]["code"] == 500
    with pytest.raises(ValueError):
        _webhook().connect_to_oakestra_network(_pod(containers=False))


def test_delete_unregisters_instance_and_service():
    job_id = system_job_id("web")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, f"{ROOT}/api/net/{job_id}/0", body="ok")
        rsps.add(responses.DELETE, f"{ROOT}/api/net/service/{job_id}", body="ok")
        result = _webhook().handle({"uid": "u6", "operation": "DELETE", "name": "web"})
        urls = [call.request.url for call in rsps.calls]
    assert urls == [f"{ROOT}/api/net/{job_id}/0", f"{ROOT}/api/net/service/{job_id}"]
    assert result["allowed"] is True
    assert result["status"]["message"] == "Deletion allowed"


def test_other_operation_is_default_allowed():
    result = _webhook().handle({"uid": "u7", "operation": "UPDATE"})
    assert result["allowed"] is True
    assert result["status"]["message"] == "Default"


def test_unreachable_root_still_annotates():
    pod = _pod()
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        _webhook().connect_to_oakestra_network(pod)
    assert pod["metadata"]["annotations"]["oakestra.io/status"] == "deployed"
    assert pod["metadata"]["annotations"]["systemJobID"] == system_job_id("web")


def test_app_wraps_response_in_review():
    client = create_app(_webhook()).test_client()
    review = {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {"uid": "u8", "operation": "CREATE", "object": _pod(None)},
    }
    reply = client.post("/mutate-v1-pod", json=review)
    assert reply.status_code == 200
    body = reply.get_json()
    assert body["kind"] == "AdmissionReview"
    assert body["apiVersion"] == "admission.k8s.io/v1"
    assert body["response"]["uid"] == "u8"
    assert body["response"]["allowed"] is True


def test_app_rejects_malformed_review():
    client = create_app(_webhook()).test_client()
    reply = client.post("/mutate-v1-pod", data="not json", content_type="application/json")
    body = reply.get_json()
    assert body["response"]["allowed"] is False
    assert body["response"]["status"]["code"] == 400