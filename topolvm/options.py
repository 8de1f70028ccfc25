"""Command-line options of lvmd, topolvm-controller and topolvm-node."""

from __future__ import annotations

import argparse
import os
import re
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from fractions import Fraction

from topolvm.api import Quantity
from topolvm.constants import DEFAULT_CSI_SOCKET, DEFAULT_LVMD_SOCKET

DEFAULT_LVMD_CONFIG = "/etc/topolvm/lvmd.yaml"

# Physical extent of 4Mi, twice over to leave room for metadata.
DEFAULT_MINIMUM_ALLOCATION_SIZE_BLOCK = "8Mi"
# The hard minimum that XFS enforces.
DEFAULT_MINIMUM_ALLOCATION_SIZE_XFS = "300Mi"
# Leaves more than 80% free space after formatting.
DEFAULT_MINIMUM_ALLOCATION_SIZE_EXT4 = "32Mi"
# Found safe by experiment.
DEFAULT_MINIMUM_ALLOCATION_SIZE_BTRFS = "200Mi"

_FILESYSTEM_MINIMUMS = {
    "ext4": DEFAULT_MINIMUM_ALLOCATION_SIZE_EXT4,
    "xfs": DEFAULT_MINIMUM_ALLOCATION_SIZE_XFS,
    "btrfs": DEFAULT_MINIMUM_ALLOCATION_SIZE_BTRFS,
}


class OptionsError(ValueError):
    """Raised for invalid command-line arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise OptionsError(message)


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_NANOSECONDS = {
    "ns": 1,
    "us": 10**3,
    "µs": 10**3,
    "μs": 10**3,
    "ms": 10**6,
    "s": 10**9,
    "m": 60 * 10**9,
    "h": 3600 * 10**9,
}


def _parse_duration(text: str) -> timedelta:
    rest = text
    sign = 1
    if rest[:1] in ("+", "-"):
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
        try:
            number = Fraction(Decimal(match.group(1)))
        except InvalidOperation:
            raise argparse.ArgumentTypeError(f"invalid duration {text!r}") from None
        total += number * _NANOSECONDS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * round(total / 1000))


def _parse_quantity(text: str) -> Quantity:
    try:
        return Quantity.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _bool_flag(parser: argparse.ArgumentParser, name: str, default: bool, help_text: str) -> None:
    parser.add_argument(
        name, nargs="?", const=True, default=default, type=_parse_bool,
        metavar="BOOL", help=help_text,
    )


def _argv(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


@dataclass
class LvmdOptions:
    """Options of lvmd."""

    config: str = DEFAULT_LVMD_CONFIG
    container: bool = False


def parse_lvmd_args(argv: Sequence[str] | None = None) -> LvmdOptions:
    """Parse the arguments of lvmd."""
    defaults = LvmdOptions()
    parser = _Parser(
        prog="lvmd", description="a gRPC service to manage LVM volumes", allow_abbrev=False
    )
    parser.add_argument("--config", default=defaults.config, help="config file")
    _bool_flag(parser, "--container", defaults.container, "Run within a container")
    ns = parser.parse_args(_argv(argv))
    return LvmdOptions(config=ns.config, container=ns.container)


def _default_filesystem_minimums() -> dict[str, Quantity]:
    return {name: Quantity.parse(size) for name, size in _FILESYSTEM_MINIMUMS.items()}


@dataclass
class ControllerOptions:
    """Options of topolvm-controller."""

    csi_socket: str = DEFAULT_CSI_SOCKET
    metrics_addr: str = ":8080"
    secure_metrics_server: bool = False
    health_addr: str = ":8081"
    enable_webhooks: bool = True
    webhook_addr: str = ":9443"
    cert_dir: str = ""
    leader_election: bool = True
    leader_election_id: str = "topolvm"
    leader_election_namespace: str = ""
    leader_election_lease_duration: timedelta = timedelta(seconds=15)
    leader_election_renew_deadline: timedelta = timedelta(seconds=10)
    leader_election_retry_period: timedelta = timedelta(seconds=2)
    skip_node_finalize: bool = False
    minimum_allocation_block: Quantity = field(
        default_factory=lambda: Quantity.parse(DEFAULT_MINIMUM_ALLOCATION_SIZE_BLOCK)
    )
    minimum_allocation_filesystem: dict[str, Quantity] = field(
        default_factory=_default_filesystem_minimums
    )


def parse_controller_args(argv: Sequence[str] | None = None) -> ControllerOptions:
    """Parse the arguments of topolvm-controller."""
    d = ControllerOptions()
    parser = _Parser(prog="topolvm-controller", description="TopoLVM CSI controller", allow_abbrev=False)
    parser.add_argument("--csi-socket", default=d.csi_socket, help="UNIX domain socket filename for CSI")
    parser.add_argument("--metrics-bind-address", dest="metrics_addr", default=d.metrics_addr)
    _bool_flag(parser, "--secure-metrics-server", d.secure_metrics_server, "Secures the metrics server")
    parser.add_argument("--health-probe-bind-address", dest="health_addr", default=d.health_addr)
    parser.add_argument("--webhook-addr", default=d.webhook_addr, help="Listen address for the webhook endpoint")
    _bool_flag(parser, "--enable-webhooks", d.enable_webhooks, "Enable webhooks")
    parser.add_argument("--cert-dir", default=d.cert_dir, help="certificate directory")
    _bool_flag(parser, "--leader-election", d.leader_election, "Enables leader election.")
    parser.add_argument("--leader-election-id", default=d.leader_election_id)
    parser.add_argument("--leader-election-namespace", default=d.leader_election_namespace)
    parser.add_argument(
        "--leader-election-lease-duration", type=_parse_duration,
        default=d.leader_election_lease_duration,
    )
    parser.add_argument(
        "--leader-election-renew-deadline", type=_parse_duration,
        default=d.leader_election_renew_deadline,
    )
    parser.add_argument(
        "--leader-election-retry-period", type=_parse_duration,
        default=d.leader_election_retry_period,
    )
    _bool_flag(
        parser, "--skip-node-finalize", d.skip_node_finalize,
        "skips automatic cleanup of PhysicalVolumeClaims when a Node is deleted",
    )
    parser.add_argument(
        "--minimum-allocation-block", type=_parse_quantity, default=d.minimum_allocation_block,
        help="Minimum Allocation Sizing for block storage.",
    )
    for name, minimum in d.minimum_allocation_filesystem.items():
        parser.add_argument(
            f"--minimum-allocation-{name}", dest=f"minimum_allocation_{name}",
            type=_parse_quantity, default=minimum,
            help=f"Minimum Allocation Sizing for volumes with the {name} filesystem.",
        )
    ns = parser.parse_args(_argv(argv))
    return ControllerOptions(
        csi_socket=ns.csi_socket,
        metrics_addr=ns.metrics_addr,
        secure_metrics_server=ns.secure_metrics_server,
        health_addr=ns.health_addr,
        enable_webhooks=ns.enable_webhooks,
        webhook_addr=ns.webhook_addr,
        cert_dir=ns.cert_dir,
        leader_election=ns.leader_election,
        leader_election_id=ns.leader_election_id,
        leader_election_namespace=ns.leader_election_namespace,
        leader_election_lease_duration=ns.leader_election_lease_duration,
        leader_election_renew_deadline=ns.leader_election_renew_deadline,
        leader_election_retry_period=ns.leader_election_retry_period,
        skip_node_finalize=ns.skip_node_finalize,
        minimum_allocation_block=ns.minimum_allocation_block,
        minimum_allocation_filesystem={
            name: getattr(ns, f"minimum_allocation_{name}") for name in _FILESYSTEM_MINIMUMS
        },
    )


@dataclass
class NodeOptions:
    """Options of topolvm-node."""

    nodename: str
    csi_socket: str = DEFAULT_CSI_SOCKET
    lvmd_socket: str = DEFAULT_LVMD_SOCKET
    metrics_addr: str = ":8080"
    secure_metrics_server: bool = False
    embed_lvmd: bool = False
    config: str = DEFAULT_LVMD_CONFIG


def parse_node_args(
    argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None
) -> NodeOptions:
    """Parse the arguments of topolvm-node.

    The node name comes from ``--nodename`` or else from ``NODE_NAME``.
    """
    env = os.environ if environ is None else environ
    d = NodeOptions(nodename="")
    parser = _Parser(prog="topolvm-node", description="TopoLVM CSI node", allow_abbrev=False)
    parser.add_argument("--csi-socket", default=d.csi_socket, help="UNIX domain socket filename for CSI")
    parser.add_argument("--lvmd-socket", default=d.lvmd_socket, help="UNIX domain socket of lvmd service")
    parser.add_argument("--metrics-bind-address", dest="metrics_addr", default=d.metrics_addr)
    _bool_flag(parser, "--secure-metrics-server", d.secure_metrics_server, "Secures the metrics server")
    parser.add_argument("--nodename", default=None, help="The resource name of the running node")
    _bool_flag(
        parser, "--embed-lvmd", d.embed_lvmd,
        "Runs LVMD locally by embedding it instead of calling it externally via gRPC",
    )
    parser.add_argument("--config", default=d.config, help="config file")
    ns = parser.parse_args(_argv(argv))
    nodename = ns.nodename if ns.nodename is not None else env.get("NODE_NAME", "")
    if not nodename:
        raise OptionsError("node name is not given")
    return NodeOptions(
        nodename=nodename,
        csi_socket=ns.csi_socket,
        lvmd_socket=ns.lvmd_socket,
        metrics_addr=ns.metrics_addr,
        secure_metrics_server=ns.secure_metrics_server,
        embed_lvmd=ns.embed_lvmd,
        config=ns.config,
    )