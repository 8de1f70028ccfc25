"""Plugin names, annotation keys, finalizers and defaults shared across TopoLVM."""

from __future__ import annotations

import os

PLUGIN_NAME = "topolvm.io"
LEGACY_PLUGIN_NAME = "topolvm.cybozu.com"

# Finalizers of PersistentVolumeClaim objects.
PVC_FINALIZER = PLUGIN_NAME + "/pvc"
LEGACY_PVC_FINALIZER = LEGACY_PLUGIN_NAME + "/pvc"

DEFAULT_CSI_SOCKET = "/run/topolvm/csi-topolvm.sock"
DEFAULT_LVMD_SOCKET = "/run/topolvm/lvmd.sock"

# Annotation name part used for the default device-class.
DEFAULT_DEVICE_CLASS_ANNOTATION_NAME = "00default"
DEFAULT_DEVICE_CLASS_NAME = ""

# Size in GiB for volumes that carry no capacity request.
DEFAULT_SIZE_GB = 1
DEFAULT_SIZE = DEFAULT_SIZE_GB << 30

# 4096 bytes aligns with 512 and 1024 byte sectors as well.
MINIMUM_SECTOR_SIZE = 4096

CREATED_BY_LABEL_KEY = "app.kubernetes.io/created-by"
CREATED_BY_LABEL_VALUE = "topolvm-controller"

DEVICE_DIRECTORY = "/dev/topolvm"


def use_legacy() -> bool:
    """Return True when the USE_LEGACY environment variable is non-empty."""
    return os.environ.get("USE_LEGACY", "") != ""


def get_plugin_name() -> str:
    """Return the name of the CSI plugin."""
    return LEGACY_PLUGIN_NAME if use_legacy() else PLUGIN_NAME


def get_capacity_key_prefix() -> str:
    """Return the key prefix of the Node annotation holding VG free space."""
    return f"capacity.{get_plugin_name()}/"


def get_capacity_resource() -> str:
    """Return the resource name of TopoLVM capacity."""
    return f"{get_plugin_name()}/capacity"


def get_topology_node_key() -> str:
    """Return the topology key that holds the node name."""
    return f"topology.{get_plugin_name()}/node"


def get_device_class_key() -> str:
    """Return the volume-create parameter key naming a device-class."""
    return f"{get_plugin_name()}/device-class"


def get_lvcreate_option_class_key() -> str:
    """Return the volume-create parameter key naming an lvcreate-option-class."""
    return f"{get_plugin_name()}/lvcreate-option-class"


def get_resize_requested_at_key() -> str:
    """Return the LogicalVolume key holding the time of a resize request."""
    return f"{get_plugin_name()}/resize-requested-at"


def get_lv_pending_deletion_key() -> str:
    """Return the name of the pending-deletion annotation."""
    return f"{get_plugin_name()}/pendingdeletion"


def get_logical_volume_finalizer() -> str:
    """Return the name of the LogicalVolume finalizer."""
    return f"{get_plugin_name()}/logicalvolume"


def get_node_finalizer() -> str:
    """Return the name of the Node finalizer."""
    return f"{get_plugin_name()}/node"