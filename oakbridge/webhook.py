"""Mutating admission webhook that attaches pods to the Oakestra network."""

from __future__ import annotations

import base64
import copy
import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests
from flask import Flask, Response, request

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/mutate-v1-pod"
CNI_ANNOTATION = "k8s.v1.cni.cncf.io/networks"
CNI_NAME = "oakestra-cni"
PORT_ANNOTATION = "oakestra.io/port"
STATUS_ANNOTATION = "oakestra.io/status"
SYSTEM_JOB_ID_ANNOTATION = "systemJobID"

_ADMISSION_API_VERSION = "admission.k8s.io/v1"
_ADMISSION_KIND = "AdmissionReview"
_TIMEOUT = 30


@dataclass
class ClusterInfo:
    """Identity of this cluster and where the root service manager listens."""

    cluster_id: str = ""
    root_service_manager_url: str = ""


def system_job_id(name: str) -> str:
    """Identifier under which a pod is known to the root network."""
    return hashlib.sha256(name.encode("utf-8")).hexdigest()[:24]


def _escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _diff(old: Any, new: Any, path: str, ops: list[dict[str, Any]]) -> None:
    if isinstance(old, Mapping) and isinstance(new, Mapping):
        for key in sorted(old, key=str):
            if key not in new:
                ops.append({"op": "remove", "path": f"{path}/{_escape(str(key))}"})
        for key in sorted(new, key=str):
            child = f"{path}/{_escape(str(key))}"
            if key not in old:
                ops.append({"op": "add", "path": child, "value": copy.deepcopy(new[key])})
            else:
                _diff(old[key], new[key], child, ops)
        return
    if type(old) is type(new) and old == new:
        return
    ops.append({"op": "replace", "path": path, "value": copy.deepcopy(new)})


def json_patch(original: Any, modified: Any) -> list[dict[str, Any]]:
    """JSON Patch operations that turn ``original`` into ``modified``."""
    ops: list[dict[str, Any]] = []
    _diff(original, modified, "", ops)
    return ops


def _allowed(uid: str, message: str) -> dict[str, Any]:
    return {"uid": uid, "allowed": True, "status": {"code": 200, "message": message}}


def _errored(uid: str, code: int, message: str) -> dict[str, Any]:
    return {"uid": uid, "allowed": False, "status": {"code": code, "message": message}}


def _patch_response(uid: str, ops: list[dict[str, Any]]) -> dict[str, Any]:
    response: dict[str, Any] = {"uid": uid, "allowed": True, "status": {"code": 200}}
    if ops:
        response["patchType"] = "JSONPatch"
        response["patch"] = base64.b64encode(json.dumps(ops).encode("utf-8")).decode("ascii")
    return response


class WebhookOakestraNetwork:
    """Registers created pods with the root network and removes deleted ones."""

    def __init__(
        self, cluster_info: ClusterInfo, session: Optional[requests.Session] = None
    ) -> None:
        self.cluster_info = cluster_info
        self.session = session if session is not None else requests.Session()

    def _send(self, method: str, url: str, body: Optional[Mapping[str, Any]] = None) -> None:
        data = json.dumps(body) if body is not None else None
        try:
            response = self.session.request(
                method,
                url,
                data=data,
                headers={"Content-Type": "application/json"},
                timeout=_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.warning("Error sending request: %s", exc)
            return
        logger.info("Status Code: %d", response.status_code)
        logger.info("Response Body: %s", response.text)

    def _register_service(self, job_id: str, pod: Mapping[str, Any]) -> None:
        metadata = pod.get("metadata") or {}
        name = metadata.get("name", "") or ""
        namespace = metadata.get("namespace", "") or ""
        containers = (pod.get("spec") or {}).get("containers") or []
        if not containers:
            raise ValueError(f"pod {name!r} has no containers")
        descriptor = {
            "applicationID": job_id,
            "app_name": name,
            "app_ns": namespace,
            "service_name": name,
            "service_ns": namespace,
            "microservice_name": name,
            "microservice_namespace": namespace,
            "image": containers[0].get("image", "") or "",
            "instance_list": [],
            "virtualization": "docker",
            "memory": 0,
            "storage": 0,
            "next_instance_progressive_number": 0,
        }
        url = self.cluster_info.root_service_manager_url + "/api/net/service/deploy"
        self._send("POST", url, {"system_job_id": job_id, "deployment_descriptor": descriptor})

    def _deploy_instance(self, job_id: str) -> None:
        body = {
            "system_job_id": job_id,
            "instance_number": 0,
            "cluster_id": self.cluster_info.cluster_id,
        }
        url = self.cluster_info.root_service_manager_url + "/api/net/instance/deploy"
        self._send("POST", url, body)

    def has_oakestra_port_annotation(self, pod: Mapping[str, Any]) -> bool:
        """Whether the pod asks for an Oakestra network port."""
        annotations = (pod.get("metadata") or {}).get("annotations") or {}
        if not annotations.get(PORT_ANNOTATION):
            logger.debug("annotation %s is not set or empty", PORT_ANNOTATION)
            return False
        return True

    def connect_to_oakestra_network(self, pod: dict[str, Any]) -> None:
        """Register the pod's service and instance, annotating the pod in place."""
        metadata = pod.setdefault("metadata", {})
        job_id = system_job_id(metadata.get("name", "") or "")
        annotations = metadata.get("annotations") or {}
        metadata["annotations"] = annotations
        annotations[CNI_ANNOTATION] = CNI_NAME
        annotations[SYSTEM_JOB_ID_ANNOTATION] = job_id

        self._register_service(job_id, pod)
        annotations[STATUS_ANNOTATION] = "registered"

        self._deploy_instance(job_id)
        annotations[STATUS_ANNOTATION] = "deployed"

    def disconnect_from_oakestra_network(self, pod_name: str) -> None:
        """Remove the pod's instance and service from the root network."""
        job_id = system_job_id(pod_name)
        root = self.cluster_info.root_service_manager_url
        self._send("DELETE", f"{root}/api/net/{job_id}/0")
        self._send("DELETE", f"{root}/api/net/service/{job_id}")

    def handle(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Admission response for the ``request`` part of an AdmissionReview."""
        uid = request.get("uid", "") or ""
        if request.get("dryRun") is True:
            return _allowed(uid, "DryRun requested, admission allowed")

        operation = request.get("operation")
        if operation == "DELETE":
            logger.info("DELETE PROCESS")
            self.disconnect_from_oakestra_network(request.get("name", "") or "")
            return _allowed(uid, "Deletion allowed")

        if operation == "CREATE":
            logger.info("CREATE PROCESS")
            original = request.get("object")
            if not isinstance(original, Mapping):
                return _errored(uid, 400, "there is no content to decode")
            pod = copy.deepcopy(dict(original))
            if self.has_oakestra_port_annotation(pod):
                try:
                    self.connect_to_oakestra_network(pod)
                except ValueError as exc:
                    return _errored(uid, 500, str(exc))
            return _patch_response(uid, json_patch(original, pod))

        return _allowed(uid, "Default")


def create_app(webhook: WebhookOakestraNetwork) -> Flask:
    """Flask application serving the webhook at its admission path."""
    app = Flask(__name__)

    @app.post(WEBHOOK_PATH)
    def mutate() -> Response:
        review = request.get_json(silent=True)
        if not isinstance(review, Mapping) or not isinstance(review.get("request"), Mapping):
            response = _errored("", 400, "invalid AdmissionReview body")
        else:
            response = webhook.handle(review["request"])
        payload = {
            "apiVersion": _ADMISSION_API_VERSION,
            "kind": _ADMISSION_KIND,
            "response": response,
        }
        return Response(json.dumps(payload), status=200, mimetype="application/json")

    return app