# rfoperator

`rfoperator` is the decision-making core of an operator for Redis failover
clusters: a group of Redis servers plus a group of Sentinels watching them.
It has no runtime dependencies.

| Module | What it holds |
| --- | --- |
| `rfoperator.api` | The `RedisFailover` resource model, defaulting and validation, and the `version_kind`, `kind` and `resource` helpers. |
| `rfoperator.operator` | `RedisFailoverHandler`, which ensures a failover's resources, checks its health and heals it; `Config`; `OperatorError`. |
| `rfoperator.metrics` | `PromMetrics`, a per-cluster status gauge in the Prometheus text format, also usable as a WSGI application; `DummyInstrumenter`. |
| `rfoperator.log` | `Logger`, a levelled `key=value` logger with fields and the caller's source location; `DummyLogger`; `base()`. |
| `rfoperator.cli` | `parse_flags` and `CMDFlags` for the operator's command-line options. |

## The resource model

```python
from rfoperator.api import RedisFailover, ValidationError

rf = RedisFailover.from_dict({
    "metadata": {"name": "cache", "namespace": "prod"},
    "spec": {
        "redis": {"replicas": 3, "customConfig": ["tcp-keepalive 60"]},
        "sentinel": {"replicas": 3},
    },
})

rf.validate()            # fills in defaults, raises ValidationError when invalid
rf.bootstrapping()       # False: no bootstrap node was given
rf.sentinels_allowed()   # True
```

`from_dict` reads a manifest with camelCase keys (`customConfig`,
`bootstrapNode`, `labelWhitelist`, …) into the dataclasses `ObjectMeta`,
`RedisFailoverSpec`, `RedisSettings`, `SentinelSettings`, `BootstrapSettings`
and the rest; a value of the wrong shape raises `ValidationError`.

`validate()` works in place:

- a name longer than 48 characters raises `ValidationError`;
- a bootstrap node without a host raises `ValidationError`; one without a
  port gets `6379`;
- `replica-priority 100` is put in front of the Redis custom configuration,
  or `replica-priority 0` when bootstrapping;
- empty images become `redis:5.0-alpine`, replica counts of zero or less
  become 3, empty exporter images get their defaults, and an empty Sentinel
  configuration becomes `down-after-milliseconds 5000` and
  `failover-timeout 10000`.

`version_kind("RedisFailover")` returns a `GroupVersionKind` in the group
`databases.spotahome.com`, version `v1`.

## Reconciling a failover

`RedisFailoverHandler` does its work through collaborators that you supply:

- a **service** that ensures the cluster objects exist:
  `ensure_redis_service`, `ensure_not_present_redis_service`,
  `ensure_sentinel_service`, `ensure_sentinel_config_map`,
  `ensure_redis_shutdown_config_map`, `ensure_redis_readiness_config_map`,
  `ensure_redis_config_map`, `ensure_redis_statefulset`,
  `ensure_sentinel_deployment`;
- a **checker** that inspects the running instances: `check_redis_number`,
  `check_sentinel_number`, `get_number_masters`, `get_redises_ips`,
  `get_master_ip`, `get_minimum_redis_pod_time` (a `datetime.timedelta`),
  `check_all_slaves_from_master`, `check_redis_slaves_ready`,
  `get_statefulset_update_revision`, `get_redises_slaves_pods`,
  `get_redises_master_pod`, `get_redis_revision_hash`, `get_sentinels_ips`,
  `check_sentinel_monitor`, `check_sentinel_number_in_memory`,
  `check_sentinel_slaves_number_in_memory`. A `check_*` method reports a
  problem by raising;
- a **healer** that changes them: `make_master`, `set_oldest_as_master`,
  `set_master_on_all`, `set_external_master_on_all`, `new_sentinel_monitor`,
  `new_sentinel_monitor_with_port`, `restore_sentinel`,
  `set_redis_custom_config`, `set_sentinel_custom_config`, `delete_pod`.

```python
from rfoperator.log import base
from rfoperator.metrics import PromMetrics
from rfoperator.operator import Config, RedisFailoverHandler

metrics = PromMetrics("/metrics", "redis_operator")
handler = RedisFailoverHandler(
    Config(listen_address=":9710", metrics_path="/metrics"),
    rf_service, rf_checker, rf_healer, k8s_service,
    metrics, base(),
)

handler.add(rf)                # validate, ensure resources, check and heal
handler.delete("prod/cache")   # drops the cluster's metric
```

`add` marks the cluster as healthy in the metrics when it succeeds; when any
step raises, it marks the cluster as erroring and lets the exception through.
More than one master raises `OperatorError("More than one master, fix manually")`.
With no master, a single Redis is made master; with several, the oldest is
made master once the youngest pod is older than two minutes, and before that
the handler waits. Stale pods are deleted one per round, slaves before the
master.

`get_labels(rf)` merges `app.kubernetes.io/managed-by: redis-operator`, the
failover's name label and its own labels, keeping only those whose keys match
a pattern in `spec.label_whitelist` when one is given.

## Metrics

```python
metrics = PromMetrics("/metrics", "my_metrics")
metrics.set_cluster_ok("testns", "test")
print(metrics.render())
# ...
# my_metrics_controller_cluster_ok{name="test",namespace="testns"} 1
```

`set_cluster_error` sets the value to 0 and `delete_cluster` removes the
series. `handle(method, path)` returns a status code and body (404 for any
other path), and the object itself is a WSGI application serving the same.

## Logging

```python
from rfoperator.log import Logger

logger = Logger({"operator": "redis-operator"}, level="debug")
logger.with_field("crd", "redisfailover").info("ready in %d s", 3)
```

`fatal` logs and raises `SystemExit(1)`; `panic` logs and raises
`RuntimeError`. `set_level` raises `ValueError` for an unknown level name.
`DummyLogger` discards everything.

## Command-line options

```python
from rfoperator.cli import parse_flags

flags = parse_flags(["--debug", "--listen-address", ":9999"])
config = flags.to_operator_config()
```

Options are `--kubeconfig` (default `~/.kube/config`), `--development`,
`--debug`, `--listen-address` (default `:9710`) and `--metrics-path`
(default `/metrics`); each is also accepted with a single dash.

## What this package does not do

It does not talk to Kubernetes or Redis: the service, checker and healer are
yours to provide. It installs no command that starts an operator, runs no
watch or resync loop, and starts no HTTP server — `PromMetrics` has to be
mounted in a WSGI server of your choosing.