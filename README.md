# topolvm

Building blocks for an LVM-backed storage driver:

- `topolvm.constants` – the plugin name and every annotation, label,
  finalizer and parameter key derived from it, plus shared defaults.
- `topolvm.api` – the `LogicalVolume` resource model with its spec, status,
  API group/version and Kubernetes-style resource quantities.
- `topolvm.access_log` – a WSGI middleware that logs one structured record
  per request.
- `topolvm.config` – loaders for the lvmd and scheduler-extender YAML files.
- `topolvm.options` – command-line option parsers for lvmd,
  topolvm-controller and topolvm-node.

Install with `pip install .` (PyYAML is the only dependency); the tests run
with `pip install .[test]` and `pytest`.

## Plugin names and keys

All derived names follow the plugin name, which is `topolvm.io` by default
and `topolvm.cybozu.com` when the `USE_LEGACY` environment variable holds any
non-empty value. The environment is read on every call.

```python
from topolvm import constants

constants.use_legacy()                      # False unless USE_LEGACY is non-empty
constants.get_plugin_name()                 # "topolvm.io"
constants.get_capacity_key_prefix()         # "capacity.topolvm.io/"
constants.get_capacity_resource()           # "topolvm.io/capacity"
constants.get_topology_node_key()           # "topology.topolvm.io/node"
constants.get_device_class_key()            # "topolvm.io/device-class"
constants.get_lvcreate_option_class_key()   # "topolvm.io/lvcreate-option-class"
constants.get_resize_requested_at_key()     # "topolvm.io/resize-requested-at"
constants.get_lv_pending_deletion_key()     # "topolvm.io/pendingdeletion"
constants.get_logical_volume_finalizer()    # "topolvm.io/logicalvolume"
constants.get_node_finalizer()              # "topolvm.io/node"
```

Fixed values include `PVC_FINALIZER` and `LEGACY_PVC_FINALIZER`,
`DEFAULT_CSI_SOCKET` (`/run/topolvm/csi-topolvm.sock`), `DEFAULT_LVMD_SOCKET`
(`/run/topolvm/lvmd.sock`), `DEFAULT_SIZE` (1 GiB in bytes),
`MINIMUM_SECTOR_SIZE` (4096) and `DEVICE_DIRECTORY` (`/dev/topolvm`).

## LogicalVolume resources

```python
from topolvm.api import LEGACY_GROUP_VERSION, LogicalVolume, Quantity

lv = LogicalVolume.from_dict({
    "apiVersion": "topolvm.io/v1",
    "kind": "LogicalVolume",
    "metadata": {"name": "pvc-1"},
    "spec": {"name": "pvc-1", "nodeName": "node-0", "size": "1Gi"},
})
lv.spec.size == Quantity.parse("1Gi")   # True
str(Quantity.parse("8Mi"))              # "8Mi"
Quantity.parse("500m").value            # 1 (rounded up)
lv.is_compatible_with(lv)               # True: same name, source and size
lv.to_dict()                            # back to the dictionary form
```

- `GroupVersion` and `GroupVersionKind` name an API group; `GROUP_VERSION`
  is `topolvm.io/v1` and `LEGACY_GROUP_VERSION` is `topolvm.cybozu.com/v1`.
  `GroupVersion.with_kind()` builds a `GroupVersionKind`.
- `Quantity.parse()` accepts decimal suffixes (`m`, `k`, `M`, `G`, …),
  binary suffixes (`Ki`, `Mi`, `Gi`, …) and exponents (`1e3`), and raises
  `ValueError` for anything else. Quantities compare by amount, not format.
- `LogicalVolumeStatus.code` is a `Code`, the gRPC status codes; `str(code)`
  gives names such as `Unknown`.
- `LogicalVolumeList` serialises and loads a list of volumes the same way.
  Empty optional fields are left out of `to_dict()`.

## Access logging

```python
from topolvm.access_log import AccessLogMiddleware

app = AccessLogMiddleware(wsgi_app)
```

Each request produces one `INFO` record with the message `access` on the
`topolvm.access` logger (or a logger you pass). Its `fields` attribute is a
dictionary with `type`, `response_time`, `protocol`, `http_status_code`,
`http_method`, `url`, `http_host`, `request_size` and `response_size`, plus
`remote_ipaddr` and `http_user_agent` when known. The record is written when
the server closes the response body.

## Configuration files

```python
from topolvm.config import LvmdConfig, SchedulerConfig

lvmd = LvmdConfig.load("/etc/topolvm/lvmd.yaml")
scheduler = SchedulerConfig.load("/etc/topolvm/scheduler.yaml")
```

`LvmdConfig` reads `socket-name`, `device-classes` and
`lvcreate-option-classes`; the socket defaults to `/run/topolvm/lvmd.sock`
and the class entries are kept as plain mappings. `SchedulerConfig` reads
`listen`, `divisors` and `default-divisor`, defaulting to `:8000` and 1;
`SchedulerConfig.load(None)` returns the defaults. A file of the wrong shape
raises `ConfigError`.

## Command-line options

```python
from topolvm.options import parse_controller_args, parse_lvmd_args, parse_node_args

controller = parse_controller_args(["--leader-election-lease-duration", "30s"])
lvmd = parse_lvmd_args(["--config", "/etc/topolvm/lvmd.yaml", "--container"])
node = parse_node_args([], {"NODE_NAME": "node-0"})
```

The parsers return `ControllerOptions`, `LvmdOptions` and `NodeOptions`.
Boolean flags accept `--flag` or `--flag=false`, durations take forms such
as `1m30s`, and minimum allocation sizes (`--minimum-allocation-block`,
`--minimum-allocation-ext4`, `-xfs`, `-btrfs`) take quantities. The node's
name comes from `--nodename` or, failing that, from `NODE_NAME`; without
either, `OptionsError` is raised, as it is for any invalid argument. With no
arguments given, the parsers read `sys.argv`.

## What this package does not do

It models the resources and parses the settings, but it runs no services.
There is no lvmd gRPC service, no CSI controller or node service, no
scheduler-extender HTTP server and no Kubernetes client; in particular
nothing here reads or writes `LogicalVolume` objects through the legacy
`topolvm.cybozu.com` group on your behalf. The package installs no
commands.