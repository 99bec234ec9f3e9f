"""The RedisFailover resource: its types, defaults and validation."""

import dataclasses
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

GROUP_NAME = "databases.spotahome.com"
VERSION = "v1"

RF_KIND = "RedisFailover"
RF_NAME = "redisfailover"
RF_NAME_PLURAL = "redisfailovers"
RF_SCOPE = "Namespaced"

DEFAULT_REDIS_NUMBER = 3
DEFAULT_SENTINEL_NUMBER = 3
DEFAULT_SENTINEL_EXPORTER_IMAGE = "leominov/redis_sentinel_exporter:1.3.0"
DEFAULT_EXPORTER_IMAGE = "oliver006/redis_exporter:v1.3.5-alpine"
DEFAULT_IMAGE = "redis:5.0-alpine"
DEFAULT_REDIS_PORT = "6379"

DEFAULT_SENTINEL_CUSTOM_CONFIG = ("down-after-milliseconds 5000", "failover-timeout 10000")
DEFAULT_REDIS_CUSTOM_CONFIG = ("replica-priority 100",)
BOOTSTRAPPING_REDIS_CUSTOM_CONFIG = ("replica-priority 0",)

MAX_NAME_LENGTH = 48


class ValidationError(ValueError):
    """A RedisFailover definition is not acceptable."""


@dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


def version_kind(kind: str) -> GroupVersionKind:
    """Qualify a kind with this API's group and version."""
    return GroupVersionKind(GROUP_NAME, VERSION, kind)


def kind(kind: str) -> str:
    """Qualify a kind with this API's group, as ``Kind.group``."""
    return f"{kind}.{GROUP_NAME}"


def resource(resource: str) -> str:
    """Qualify a resource with this API's group, as ``resource.group``."""
    return f"{resource}.{GROUP_NAME}"


@dataclass
class OwnerReference:
    api_version: str
    kind: str
    name: str
    uid: str = ""
    controller: bool = False
    block_owner_deletion: bool = False


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class RedisCommandRename:
    from_: str = ""
    to: str = ""


@dataclass
class RedisExporter:
    enabled: bool = False
    image: str = ""
    image_pull_policy: str = ""


@dataclass
class SentinelExporter:
    enabled: bool = False
    image: str = ""
    image_pull_policy: str = ""


@dataclass
class RedisStorage:
    keep_after_deletion: bool = False
    empty_dir: Optional[dict[str, Any]] = None
    persistent_volume_claim: Optional[dict[str, Any]] = None


@dataclass
class RedisSettings:
    image: str = ""
    image_pull_policy: str = ""
    replicas: int = 0
    resources: dict[str, Any] = field(default_factory=dict)
    custom_config: list[str] = field(default_factory=list)
    custom_command_renames: list[RedisCommandRename] = field(default_factory=list)
    command: list[str] = field(default_factory=list)
    shutdown_config_map: str = ""
    storage: RedisStorage = field(default_factory=RedisStorage)
    exporter: RedisExporter = field(default_factory=RedisExporter)
    affinity: Optional[dict[str, Any]] = None
    security_context: Optional[dict[str, Any]] = None
    image_pull_secrets: list[dict[str, Any]] = field(default_factory=list)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    node_selector: dict[str, str] = field(default_factory=dict)
    pod_annotations: dict[str, str] = field(default_factory=dict)
    service_annotations: dict[str, str] = field(default_factory=dict)
    host_network: bool = False
    dns_policy: str = ""
    priority_class_name: str = ""


@dataclass
class SentinelSettings:
    image: str = ""
    image_pull_policy: str = ""
    replicas: int = 0
    resources: dict[str, Any] = field(default_factory=dict)
    custom_config: list[str] = field(default_factory=list)
    command: list[str] = field(default_factory=list)
    affinity: Optional[dict[str, Any]] = None
    security_context: Optional[dict[str, Any]] = None
    image_pull_secrets: list[dict[str, Any]] = field(default_factory=list)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    node_selector: dict[str, str] = field(default_factory=dict)
    pod_annotations: dict[str, str] = field(default_factory=dict)
    service_annotations: dict[str, str] = field(default_factory=dict)
    exporter: SentinelExporter = field(default_factory=SentinelExporter)
    host_network: bool = False
    dns_policy: str = ""
    priority_class_name: str = ""


@dataclass
class AuthSettings:
    secret_path: str = ""


@dataclass
class BootstrapSettings:
    host: str = ""
    port: str = ""
    allow_sentinels: bool = False


@dataclass
class RedisFailoverSpec:
    redis: RedisSettings = field(default_factory=RedisSettings)
    sentinel: SentinelSettings = field(default_factory=SentinelSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    label_whitelist: list[str] = field(default_factory=list)
    bootstrap_node: Optional[BootstrapSettings] = None


def _camel(name: str) -> str:
    head, *rest = name.rstrip("_").split("_")
    return head + "".join(part.capitalize() for part in rest)


def _optional_inner(hint: Any) -> Optional[Any]:
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        inner = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(inner) == 1:
            return inner[0]
    return None


def _convert(hint: Any, value: Any) -> Any:
    inner = _optional_inner(hint)
    if inner is not None:
        return None if value is None else _convert(inner, value)
    origin = typing.get_origin(hint)
    if origin is list:
        if not isinstance(value, list):
            raise ValidationError(f"expected a list, got {type(value).__name__}")
        (item,) = typing.get_args(hint)
        return [_convert(item, entry) for entry in value]
    if origin is dict:
        if not isinstance(value, Mapping):
            raise ValidationError(f"expected an object, got {type(value).__name__}")
        return dict(value)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return _from_mapping(hint, value)
    return value


def _from_mapping(cls: type, data: Any) -> Any:
    if not isinstance(data, Mapping):
        raise ValidationError(f"expected an object for {cls.__name__}, got {type(data).__name__}")
    kwargs = {}
    for item in dataclasses.fields(cls):
        key = _camel(item.name)
        if key not in data:
            continue
        hint = item.type
        value = data[key]
        if value is None and _optional_inner(hint) is None:
            continue
        kwargs[item.name] = _convert(hint, value)
    return cls(**kwargs)


@dataclass
class RedisFailover:
    """A Redis failover: a group of redis servers and the sentinels watching them."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: RedisFailoverSpec = field(default_factory=RedisFailoverSpec)

    def bootstrapping(self) -> bool:
        """True when a bootstrap node is given."""
        return self.spec.bootstrap_node is not None

    def sentinels_allowed(self) -> bool:
        """True unless bootstrapping from a node that does not allow sentinels."""
        return not self.bootstrapping() or self.spec.bootstrap_node.allow_sentinels

    def validate(self) -> None:
        """Fill in defaults and raise ValidationError if the definition is invalid."""
        if len(self.metadata.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"name length can't be higher than {MAX_NAME_LENGTH}")

        initial_redis_config = DEFAULT_REDIS_CUSTOM_CONFIG
        if self.bootstrapping():
            node = self.spec.bootstrap_node
            if not node.host:
                raise ValidationError("BootstrapNode must include a host when provided")
            if not node.port:
                node.port = DEFAULT_REDIS_PORT
            initial_redis_config = BOOTSTRAPPING_REDIS_CUSTOM_CONFIG

        redis = self.spec.redis
        sentinel = self.spec.sentinel
        redis.custom_config = [*initial_redis_config, *redis.custom_config]

        if not redis.image:
            redis.image = DEFAULT_IMAGE
        if not sentinel.image:
            sentinel.image = DEFAULT_IMAGE
        if redis.replicas <= 0:
            redis.replicas = DEFAULT_REDIS_NUMBER
        if sentinel.replicas <= 0:
            sentinel.replicas = DEFAULT_SENTINEL_NUMBER
        if not redis.exporter.image:
            redis.exporter.image = DEFAULT_EXPORTER_IMAGE
        if not sentinel.exporter.image:
            sentinel.exporter.image = DEFAULT_SENTINEL_EXPORTER_IMAGE
        if not sentinel.custom_config:
            sentinel.custom_config = list(DEFAULT_SENTINEL_CUSTOM_CONFIG)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RedisFailover":
        """Build a RedisFailover from a manifest with camelCase keys."""
        return _from_mapping(cls, data)