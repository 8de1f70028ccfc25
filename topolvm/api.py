"""LogicalVolume resource types for the current and legacy API groups."""

from __future__ import annotations

import copy
import enum
import math
import re
from dataclasses import dataclass, field
from fractions import Fraction
from functools import total_ordering
from typing import Any


class Code(enum.IntEnum):
    """gRPC status codes as stored in a LogicalVolume status."""

    OK = 0
    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    def __str__(self) -> str:
        return _CODE_DISPLAY[self]


_CODE_DISPLAY = {
    Code.OK: "OK",
    Code.CANCELED: "Canceled",
    Code.UNKNOWN: "Unknown",
    Code.INVALID_ARGUMENT: "InvalidArgument",
    Code.DEADLINE_EXCEEDED: "DeadlineExceeded",
    Code.NOT_FOUND: "NotFound",
    Code.ALREADY_EXISTS: "AlreadyExists",
    Code.PERMISSION_DENIED: "PermissionDenied",
    Code.RESOURCE_EXHAUSTED: "ResourceExhausted",
    Code.FAILED_PRECONDITION: "FailedPrecondition",
    Code.ABORTED: "Aborted",
    Code.OUT_OF_RANGE: "OutOfRange",
    Code.UNIMPLEMENTED: "Unimplemented",
    Code.INTERNAL: "Internal",
    Code.UNAVAILABLE: "Unavailable",
    Code.DATA_LOSS: "DataLoss",
    Code.UNAUTHENTICATED: "Unauthenticated",
}

_CODE_JSON_NAMES = {
    "OK": Code.OK,
    "CANCELLED": Code.CANCELED,
    "UNKNOWN": Code.UNKNOWN,
    "INVALID_ARGUMENT": Code.INVALID_ARGUMENT,
    "DEADLINE_EXCEEDED": Code.DEADLINE_EXCEEDED,
    "NOT_FOUND": Code.NOT_FOUND,
    "ALREADY_EXISTS": Code.ALREADY_EXISTS,
    "PERMISSION_DENIED": Code.PERMISSION_DENIED,
    "RESOURCE_EXHAUSTED": Code.RESOURCE_EXHAUSTED,
    "FAILED_PRECONDITION": Code.FAILED_PRECONDITION,
    "ABORTED": Code.ABORTED,
    "OUT_OF_RANGE": Code.OUT_OF_RANGE,
    "UNIMPLEMENTED": Code.UNIMPLEMENTED,
    "INTERNAL": Code.INTERNAL,
    "UNAVAILABLE": Code.UNAVAILABLE,
    "DATA_LOSS": Code.DATA_LOSS,
    "UNAUTHENTICATED": Code.UNAUTHENTICATED,
}


def _parse_code(value: Any) -> Code:
    if isinstance(value, Code):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid code: {value!r}")
    if isinstance(value, int):
        try:
            return Code(value)
        except ValueError:
            raise ValueError(f"invalid code: {value}") from None
    if isinstance(value, str):
        try:
            return _CODE_JSON_NAMES[value]
        except KeyError:
            raise ValueError(f"invalid code: {value!r}") from None
    raise ValueError(f"invalid code: {value!r}")


@dataclass(frozen=True)
class GroupVersion:
    """An API group and version."""

    group: str
    version: str

    def with_kind(self, kind: str) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, kind)

    def __str__(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


@dataclass(frozen=True)
class GroupVersionKind:
    """An API group, version and kind."""

    group: str
    version: str
    kind: str

    @property
    def group_version(self) -> GroupVersion:
        return GroupVersion(self.group, self.version)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Kind={self.kind}"


def _parse_group_version(text: str) -> GroupVersion:
    if not text:
        return GroupVersion("", "")
    parts = text.split("/")
    if len(parts) == 1:
        return GroupVersion("", parts[0])
    if len(parts) == 2:
        return GroupVersion(parts[0], parts[1])
    raise ValueError(f"unexpected GroupVersion string: {text}")


GROUP_VERSION = GroupVersion("topolvm.io", "v1")
LEGACY_GROUP_VERSION = GroupVersion("topolvm.cybozu.com", "v1")

LOGICAL_VOLUME_KIND = "LogicalVolume"
LOGICAL_VOLUME_LIST_KIND = "LogicalVolumeList"


BINARY_SI = "BinarySI"
DECIMAL_SI = "DecimalSI"
DECIMAL_EXPONENT = "DecimalExponent"
_FORMATS = (BINARY_SI, DECIMAL_SI, DECIMAL_EXPONENT)

_NUMBER_RE = re.compile(r"^([+-]?(?:\d+(?:\.\d*)?|\.\d+))(.*)$")
_EXPONENT_RE = re.compile(r"^[eE]([+-]?\d+)$")
_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_SUFFIXES = {
    "n": -9, "u": -6, "m": -3, "": 0, "k": 3,
    "M": 6, "G": 9, "T": 12, "P": 15, "E": 18,
}
_BINARY_BY_EXPONENT = {v: k for k, v in _BINARY_SUFFIXES.items()}
_DECIMAL_BY_EXPONENT = {v: k for k, v in _DECIMAL_SUFFIXES.items()}


@total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """A Kubernetes resource quantity; compares by amount, not by format."""

    amount: Fraction
    format: str = DECIMAL_SI

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", Fraction(self.amount))
        if self.format not in _FORMATS:
            raise ValueError(f"unknown quantity format: {self.format!r}")

    @classmethod
    def parse(cls, text: str) -> Quantity:
        """Parse a quantity such as ``8Mi``, ``500m`` or ``1e3``."""
        match = _NUMBER_RE.match(text)
        if match is None:
            raise ValueError(f"quantities must match the regular expression: {text!r}")
        number, suffix = match.groups()
        base = Fraction(number)
        if suffix in _DECIMAL_SUFFIXES:
            return cls(base * Fraction(10) ** _DECIMAL_SUFFIXES[suffix], DECIMAL_SI)
        if suffix in _BINARY_SUFFIXES:
            return cls(base * 2 ** _BINARY_SUFFIXES[suffix], BINARY_SI)
        exponent = _EXPONENT_RE.match(suffix)
        if exponent is not None:
            return cls(base * Fraction(10) ** int(exponent.group(1)), DECIMAL_EXPONENT)
        raise ValueError(f"unable to parse quantity's suffix: {text!r}")

    @property
    def value(self) -> int:
        """The amount rounded up to an integer, away from zero."""
        magnitude = math.ceil(abs(self.amount))
        return -magnitude if self.amount < 0 else magnitude

    def __str__(self) -> str:
        if self.amount == 0:
            return "0"
        sign = "-" if self.amount < 0 else ""
        magnitude = abs(self.amount)
        if (
            self.format == BINARY_SI
            and magnitude.denominator == 1
            and magnitude >= 1024
        ):
            mantissa = magnitude.numerator
            exponent = 0
            while mantissa % 1024 == 0 and exponent < 60:
                mantissa //= 1024
                exponent += 10
            return f"{sign}{mantissa}{_BINARY_BY_EXPONENT[exponent]}"
        mantissa = math.ceil(magnitude * 10**9)
        exponent = -9
        while mantissa % 1000 == 0 and exponent < 18:
            mantissa //= 1000
            exponent += 3
        if self.format == DECIMAL_EXPONENT:
            suffix = f"e{exponent}" if exponent else ""
        else:
            suffix = _DECIMAL_BY_EXPONENT[exponent]
        return f"{sign}{mantissa}{suffix}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.amount == other.amount

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.amount < other.amount

    def __hash__(self) -> int:
        return hash(self.amount)


@dataclass
class LogicalVolumeSpec:
    """Desired state of a LogicalVolume."""

    name: str = ""
    node_name: str = ""
    size: Quantity = field(default_factory=lambda: Quantity(0))
    device_class: str = ""
    lvcreate_option_class: str = ""
    # Name of the source logical volume, if any.
    source: str = ""
    # "ro" for snapshots, "rw" for restores and clones.
    access_type: str = ""


@dataclass
class LogicalVolumeStatus:
    """Observed state of a LogicalVolume."""

    volume_id: str = ""
    code: Code = Code.OK
    message: str = ""
    current_size: Quantity | None = None


def _spec_to_dict(spec: LogicalVolumeSpec) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": spec.name,
        "nodeName": spec.node_name,
        "size": str(spec.size),
    }
    optional = {
        "deviceClass": spec.device_class,
        "lvcreateOptionClass": spec.lvcreate_option_class,
        "source": spec.source,
        "accessType": spec.access_type,
    }
    data.update({key: value for key, value in optional.items() if value})
    return data


def _spec_from_dict(data: dict[str, Any]) -> LogicalVolumeSpec:
    size = data.get("size")
    return LogicalVolumeSpec(
        name=data.get("name", ""),
        node_name=data.get("nodeName", ""),
        size=Quantity.parse(str(size)) if size is not None else Quantity(0),
        device_class=data.get("deviceClass", ""),
        lvcreate_option_class=data.get("lvcreateOptionClass", ""),
        source=data.get("source", ""),
        access_type=data.get("accessType", ""),
    )


def _status_to_dict(status: LogicalVolumeStatus) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if status.volume_id:
        data["volumeID"] = status.volume_id
    if status.code != Code.OK:
        data["code"] = int(status.code)
    if status.message:
        data["message"] = status.message
    if status.current_size is not None:
        data["currentSize"] = str(status.current_size)
    return data


def _status_from_dict(data: dict[str, Any]) -> LogicalVolumeStatus:
    current_size = data.get("currentSize")
    return LogicalVolumeStatus(
        volume_id=data.get("volumeID", ""),
        code=_parse_code(data.get("code", 0)),
        message=data.get("message", ""),
        current_size=(
            Quantity.parse(str(current_size)) if current_size is not None else None
        ),
    )


@dataclass
class LogicalVolume:
    """A LogicalVolume resource in either the current or the legacy group."""

    metadata: dict[str, Any] = field(default_factory=dict)
    spec: LogicalVolumeSpec = field(default_factory=LogicalVolumeSpec)
    status: LogicalVolumeStatus = field(default_factory=LogicalVolumeStatus)
    group_version: GroupVersion = GROUP_VERSION
    kind: str = LOGICAL_VOLUME_KIND

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def group_version_kind(self) -> GroupVersionKind:
        return self.group_version.with_kind(self.kind)

    def is_compatible_with(self, other: LogicalVolume) -> bool:
        """Return True if name, source and size match."""
        return (
            self.spec.name == other.spec.name
            and self.spec.source == other.spec.source
            and self.spec.size == other.spec.size
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": str(self.group_version),
            "kind": self.kind,
            "metadata": copy.deepcopy(self.metadata),
            "spec": _spec_to_dict(self.spec),
            "status": _status_to_dict(self.status),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogicalVolume:
        api_version = data.get("apiVersion")
        return cls(
            metadata=copy.deepcopy(data.get("metadata") or {}),
            spec=_spec_from_dict(data.get("spec") or {}),
            status=_status_from_dict(data.get("status") or {}),
            group_version=(
                _parse_group_version(api_version) if api_version else GROUP_VERSION
            ),
            kind=data.get("kind") or LOGICAL_VOLUME_KIND,
        )


@dataclass
class LogicalVolumeList:
    """A list of LogicalVolume resources."""

    items: list[LogicalVolume] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    group_version: GroupVersion = GROUP_VERSION
    kind: str = LOGICAL_VOLUME_LIST_KIND

    @property
    def group_version_kind(self) -> GroupVersionKind:
        return self.group_version.with_kind(self.kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": str(self.group_version),
            "kind": self.kind,
            "metadata": copy.deepcopy(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogicalVolumeList:
        api_version = data.get("apiVersion")
        return cls(
            items=[LogicalVolume.from_dict(item) for item in data.get("items") or []],
            metadata=copy.deepcopy(data.get("metadata") or {}),
            group_version=(
                _parse_group_version(api_version) if api_version else GROUP_VERSION
            ),
            kind=data.get("kind") or LOGICAL_VOLUME_LIST_KIND,
        )