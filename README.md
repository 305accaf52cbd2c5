# oakbridge

oakbridge holds the pieces needed to join a Kubernetes cluster to an
Oakestra root orchestrator:

- `oakbridge.agent_config` — the cluster agent's settings, read from the
  environment.
- `oakbridge.agent_jobs` — deployment requests sent by the root and the
  `OakestraJob` resource objects built from them.
- `oakbridge.crd` — the `OakestraJob` custom resource types
  (`oakestra.oakestra.kubernetes/v1`).
- `oakbridge.webhook` — a mutating admission webhook that registers
  annotated pods with the Oakestra network and removes them on deletion.
- `oakbridge.translation_table` — the per-node table that maps service
  addresses to namespace addresses.
- `oakbridge.cni_models` — the request and response messages exchanged
  between a CNI plugin and the node network manager.

## Installation

```
pip install .
pip install ".[test]"   # with pytest and responses, to run the tests
```

## Agent configuration

`get_config(environ)` starts from defaults and overrides them from the given
mapping, or from `os.environ` when `environ` is `None`.
`ROOT_SYSTEM_MANAGER_IP` is required; everything else has a default:

| Variable                       | Field                        | Default     |
|--------------------------------|------------------------------|-------------|
| `ROOT_SYSTEM_MANAGER_PORT`     | `root_system_manager_port`   | `10000`     |
| `ROOT_SERIVCE_MANAGER_PORT`    | `root_service_manager_port`  | `10099`     |
| `ROOT_GRPC_PORT`               | `root_grpc_port`             | `50052`     |
| `CLUSTER_SERVICE_MANAGER_IP`   | `cluster_service_manager_ip` | `localhost` |
| `CLUSTER_SERVICE_MANAGER_PORT` | `network_component_port`     | `10110`     |
| `MY_PORT`                      | `my_port`                    | `10100`     |
| `NODE_PORT`                    | `node_port`                  | `30000`     |
| `CLUSTER_NAME`                 | `cluster_name`               | `k8s`       |
| `CLUSTER_LOCATION`             | `cluster_location`           | `Munich`    |

An unset or empty variable keeps the default and logs a warning. A missing
root address, or a port that is not an integer, raises `ConfigError`.

```python
from oakbridge.agent_config import get_config

config = get_config({"ROOT_SYSTEM_MANAGER_IP": "10.0.0.1", "MY_PORT": "10200"})
config.my_port        # 10200
config.cluster_name   # "k8s"
```

## Job requests and resources

`OakestraJsonRequest.from_dict()` parses a deployment request body from the
root (missing fields become empty values; wrongly typed fields raise
`ValueError`). `job_from_request()` turns it into an `AgentJob` in the
`oakestra` namespace with status `KUBERNETES_SCHEDULED`, and
`job_to_resource()` renders that job as the resource object to submit to the
API server, labelled with `ID=<microservice id>`.

```python
from oakbridge.agent_jobs import OakestraJsonRequest, job_from_request, job_to_resource

request = OakestraJsonRequest.from_dict({
    "microservice_name": "web",
    "microserviceID": "abc123",
    "image": "nginx:latest",
    "instance_list": [{"cluster_id": "c1", "cluster_location": "Munich", "instance_number": 0}],
})
resource = job_to_resource(job_from_request(request))
```

`label_selector("ID", "abc123")` gives `"ID=abc123"`.

## Custom resource types

`oakbridge.crd` models the resource with dataclasses: `OakestraJob`,
`OakestraJobSpec`, `OakestraJobStatus` and `Instance`, each with `from_dict()`
and (except the status) `to_dict()`. Optional fields are left out of
`to_dict()` output when empty. `InstanceNumberSet` is a dict of instances
keyed by the decimal string of their instance number, with `add()` and
`remove()`.

## Network admission webhook

`WebhookOakestraNetwork.handle()` takes the `request` part of an
`AdmissionReview` and returns the `response` part:

- dry runs are allowed without side effects;
- `DELETE`: the instance and service derived from the pod name are removed
  from the root service manager (`DELETE /api/net/<id>/0` and
  `DELETE /api/net/service/<id>`);
- `CREATE`: a pod with a non-empty `oakestra.io/port` annotation is registered
  (`POST /api/net/service/deploy`, then `POST /api/net/instance/deploy`) and
  annotated with `k8s.v1.cni.cncf.io/networks: oakestra-cni`, `systemJobID`
  and `oakestra.io/status`; the changes come back as a base64 JSON Patch.

The system job id is `system_job_id(pod_name)`: the first 24 hex digits of
the SHA-256 of the name. `json_patch(original, modified)` computes the patch
operations. `create_app(webhook)` returns a Flask application that serves
`POST /mutate-v1-pod`:

```python
from oakbridge.webhook import ClusterInfo, WebhookOakestraNetwork, create_app

webhook = WebhookOakestraNetwork(
    ClusterInfo(cluster_id="cluster-1", root_service_manager_url="http://localhost:10099"),
    None,
)
app = create_app(webhook)
```

Failures talking to the root service manager are logged and do not block
admission.

## Service translation table

```python
from oakbridge.translation_table import ServiceIP, ServiceIpType, TableEntry, TableManager

table = TableManager()
table.add(TableEntry(
    job_name="a1.a1.a2.a2", appname="a1", appns="a1",
    servicename="a2", servicenamespace="a2",
    nodeip="10.30.0.1", nodeport=1003,
    nsip="10.18.0.1", nsipv6="fc00::1",
    service_ip=[ServiceIP(ServiceIpType.ROUND_ROBIN, "10.30.1.1", "fdff:2000::1")],
))
table.search_by_service_ip("10.30.1.1")
table.search_by_ns_ip("fc00::1")        # entry or None
table.remove_by_nsip("10.18.0.1")       # raises EntryNotFoundError if absent
table.remove_by_job_name("a1.a1.a2.a2")
```

`add()` raises `InvalidEntryError` unless application, service and namespace
names are 1–10 bytes long, instance and cluster numbers are not negative,
node and namespace addresses are set and at least one service IP is given.
`is_namespace_still_valid(nsip, entries)` tells whether any entry still uses
a namespace address. The table is safe to share between threads.

## What this package does not do

oakbridge is a library. It has no command-line programs and starts no
services by itself. It does not include a Kubernetes API client, an agent
HTTP server for the root's deploy and delete calls, cluster registration
with the root, periodic hardware reporting, or a controller that reconciles
`OakestraJob` resources into Deployments. It also does not create veth pairs
or configure network namespaces; `oakbridge.cni_models` only describes the
messages.