from datetime import timedelta

import pytest

from topolvm.api import Quantity
from topolvm.constants import DEFAULT_CSI_SOCKET, DEFAULT_LVMD_SOCKET
from topolvm.options import (
    OptionsError,
    parse_controller_args,
    parse_lvmd_args,
    parse_node_args,
)


def test_lvmd_defaults():
    options = parse_lvmd_args([])
    assert options.config == "/etc/topolvm/lvmd.yaml"
    assert options.container is False


def test_lvmd_overrides():
    options = parse_lvmd_args(["--config", "/tmp/x.yaml", "--container"])
    assert options.config == "/tmp/x.yaml"
    assert options.container is True
    assert parse_lvmd_args(["--container=false"]).container is False


def test_lvmd_unknown_flag():
    with pytest.raises(OptionsError):
        parse_lvmd_args(["--bogus"])


def test_controller_defaults():
    options = parse_controller_args([])
    assert options.csi_socket == DEFAULT_CSI_SOCKET
    assert options.metrics_addr == ":8080"
    assert options.health_addr == ":8081"
    assert options.webhook_addr == ":9443"
    assert options.enable_webhooks is True
    assert options.leader_election is True
    assert options.leader_election_id == "topolvm"
    assert options.leader_election_lease_duration == timedelta(seconds=15)
    assert options.leader_election_renew_deadline == timedelta(seconds=10)
    assert options.leader_election_retry_period == timedelta(seconds=2)
    assert options.skip_node_finalize is False
    assert options.minimum_allocation_block == Quantity.parse("8Mi")
    assert options.minimum_allocation_filesystem == {
        "ext4": Quantity.parse("32Mi"),
        "xfs": Quantity.parse("300Mi"),
        "btrfs": Quantity.parse("200Mi"),
    }


def test_controller_bool_forms():
    options = parse_controller_args(
        ["--enable-webhooks=false", "--skip-node-finalize", "--leader-election", "F"]
    )
    assert options.enable_webhooks is False
    assert options.skip_node_finalize is True
    assert options.leader_election is False


def test_controller_bad_bool():
    with pytest.raises(OptionsError):
        parse_controller_args(["--enable-webhooks=maybe"])


def test_controller_durations():
    options = parse_controller_args(
        ["--leader-election-lease-duration=20s", "--leader-election-retry-period", "500ms"]
    )
    assert options.leader_election_lease_duration == timedelta(seconds=20)
    assert options.leader_election_retry_period == timedelta(milliseconds=500)
    combined = parse_controller_args(["--leader-election-renew-deadline=1m30s"])
    assert combined.leader_election_renew_deadline == timedelta(minutes=1) + timedelta(seconds=30)


def test_controller_bad_duration():
    with pytest.raises(OptionsError):
        parse_controller_args(["--leader-election-lease-duration=15"])
    with pytest.raises(OptionsError):
        parse_controller_args(["--leader-election-lease-duration=abc"])


def test_controller_quantities():
    options = parse_controller_args(
        ["--minimum-allocation-xfs=1Gi", "--minimum-allocation-block", "16Mi"]
    )
    assert options.minimum_allocation_filesystem["xfs"] == Quantity.parse("1Gi")
    assert options.minimum_allocation_filesystem["ext4"] == Quantity.parse("32Mi")
    assert options.minimum_allocation_block == Quantity.parse("16Mi")


def test_controller_bad_quantity():
    with pytest.raises(OptionsError):
        parse_controller_args(["--minimum-allocation-ext4=lots"])


def test_controller_no_abbreviations():
    with pytest.raises(OptionsError):
        parse_controller_args(["--cert", "/tmp"])


def test_node_name_from_env():
    options = parse_node_args([], {"NODE_NAME": "worker-1"})
    assert options.nodename == "worker-1"
    assert options.csi_socket == DEFAULT_CSI_SOCKET
    assert options.lvmd_socket == DEFAULT_LVMD_SOCKET
    assert options.embed_lvmd is False
    assert options.config == "/etc/topolvm/lvmd.yaml"


def test_node_flag_beats_env():
    options = parse_node_args(["--nodename", "worker-2"], {"NODE_NAME": "worker-1"})
    assert options.nodename == "worker-2"


def test_node_name_missing():
    with pytest.raises(OptionsError, match="node name is not given"):
        parse_node_args([], {})
    with pytest.raises(OptionsError):
        parse_node_args([], {"NODE_NAME": ""})


def test_node_overrides():
    options = parse_node_args(
        ["--embed-lvmd", "--lvmd-socket=/tmp/l.sock", "--config", "/tmp/c.yaml"],
        {"NODE_NAME": "worker-1"},
    )
    assert options.embed_lvmd is True
    assert options.lvmd_socket == "/tmp/l.sock"
    assert options.config == "/tmp/c.yaml"