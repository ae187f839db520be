"""
Configuration records: Cloudflare credentials plus speed-test parameters.

Records are immutable values. The YAML layout produced by
:meth:`ConfigurationRecord.to_dict` is the on-disk format::

    cloudflare:
      api_key: ...
      domains: [a.example.com, b.example.com]
    speed_test:
      routines: 200
      test_type: IPV4
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping

from .errors import ValidationFailure

CONFIG_EXTENSIONS = (".yaml", ".yml")
DEFAULT_EXTENSION = ".yaml"

DEFAULT_SPEED_TEST_URL = "https://speedtest.ayaoblog.space/file.mp4"
DEFAULT_IPV4_FILE = "ip.txt"
DEFAULT_IPV6_FILE = "ipv6.txt"


class TestType(Enum):
    """Address family probed by a run."""

    __test__ = False  # keep pytest from collecting the enum

    IPV4 = "IPV4"
    IPV6 = "IPV6"

    @classmethod
    def parse(cls, value: Any) -> "TestType":
        if isinstance(value, TestType):
            return value
        text = str(value or "").strip().upper()
        if not text:
            return cls.IPV4
        try:
            return cls(text)
        except ValueError:
            raise ValidationFailure(f"unknown test type: {value!r}") from None


@dataclass(frozen=True)
class CloudflareSettings:
    api_key: str = ""
    email: str = ""
    zone_id: str = ""
    zone_name: str = ""
    domains: tuple[str, ...] = ()
    domain_ipv6s: tuple[str, ...] = ()


@dataclass(frozen=True)
class SpeedTestSettings:
    # latency probing
    routines: int = 200
    ping_times: int = 4
    test_count: int = 10
    download_time: int = 10
    tcp_port: int = 443
    speed_test_url: str = DEFAULT_SPEED_TEST_URL

    # HTTP latency probing
    httping: bool = False
    httping_status_code: int = 200
    httping_cf_colo: str = ""

    # filters
    max_delay: int = 9999
    min_delay: int = 0
    max_loss_rate: float = 1.0
    min_speed: float = 0.0

    # output and candidates
    print_num: int = 10
    ipv4_file: str = DEFAULT_IPV4_FILE
    ipv6_file: str = DEFAULT_IPV6_FILE
    test_type: TestType = TestType.IPV4
    output: str = "result.csv"

    disable_download: bool = False
    test_all_ip: bool = False

    def candidate_file(self) -> str:
        """Candidate file for the selected test type, falling back to the stock name."""
        if self.test_type is TestType.IPV6:
            return self.ipv6_file or DEFAULT_IPV6_FILE
        return self.ipv4_file or DEFAULT_IPV4_FILE


# YAML key -> field name, where they differ
_CLOUDFLARE_KEYS = {"domainipv6s": "domain_ipv6s"}

# Fields substituted with their default at load time when missing or zero.
# min_delay and min_speed are legitimately zero and never substituted.
DEFAULTED_FIELDS = (
    "routines",
    "ping_times",
    "test_count",
    "download_time",
    "tcp_port",
    "max_delay",
    "max_loss_rate",
)

_DEFAULTED_PATHS = ("ipv4_file", "ipv6_file")

_SECTIONS = {
    "cloudflare": CloudflareSettings,
    "speed_test": SpeedTestSettings,
}


def _zero_value(field_type: Any) -> Any:
    if field_type in (int, "int"):
        return 0
    if field_type in (float, "float"):
        return 0.0
    if field_type in (bool, "bool"):
        return False
    if field_type in ("TestType",):
        return TestType.IPV4
    if str(field_type).startswith("tuple"):
        return ()
    return ""


def _coerce(name: str, field_type: Any, value: Any) -> Any:
    type_name = field_type if isinstance(field_type, str) else getattr(field_type, "__name__", str(field_type))
    if value is None:
        return _zero_value(type_name)
    try:
        if type_name == "bool":
            if isinstance(value, str):
                return value.strip().lower() in ("true", "1", "yes", "on")
            return bool(value)
        if type_name == "int":
            if isinstance(value, bool):
                raise TypeError("boolean is not a number")
            if isinstance(value, float) and not value.is_integer():
                raise ValueError("not an integer")
            return int(value)
        if type_name == "float":
            if isinstance(value, bool):
                raise TypeError("boolean is not a number")
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailure(f"invalid value for {name}: {value!r}") from exc
    if type_name == "TestType":
        return TestType.parse(value)
    if type_name.startswith("tuple"):
        if isinstance(value, str):
            return split_lines(value)
        return tuple(str(item) for item in value)
    return str(value)


def _section_from_dict(section_cls: type, data: Mapping[str, Any], renames: Mapping[str, str]) -> Any:
    values: Dict[str, Any] = {}
    by_name = {f.name: f for f in fields(section_cls)}
    for key, raw in data.items():
        name = renames.get(key, key)
        section_field = by_name.get(name)
        if section_field is None:
            continue
        values[name] = _coerce(name, section_field.type, raw)
    for name, section_field in by_name.items():
        values.setdefault(name, _zero_value(section_field.type))
    return section_cls(**values)


def _section_to_dict(section: Any, renames: Mapping[str, str]) -> Dict[str, Any]:
    reverse = {v: k for k, v in renames.items()}
    out: Dict[str, Any] = {}
    for section_field in fields(section):
        value = getattr(section, section_field.name)
        if isinstance(value, TestType):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        out[reverse.get(section_field.name, section_field.name)] = value
    return out


@dataclass(frozen=True)
class ConfigurationRecord:
    """A named bundle of provider credentials and probing parameters."""

    cloudflare: CloudflareSettings = field(default_factory=CloudflareSettings)
    speed_test: SpeedTestSettings = field(default_factory=SpeedTestSettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ConfigurationRecord":
        """Decode the YAML layout; absent keys decode as zero values."""
        data = data or {}
        if not isinstance(data, Mapping):
            raise ValidationFailure("configuration must be a mapping")
        cloudflare = data.get("cloudflare") or {}
        speed_test = data.get("speed_test") or {}
        if not isinstance(cloudflare, Mapping) or not isinstance(speed_test, Mapping):
            raise ValidationFailure("configuration sections must be mappings")
        return cls(
            cloudflare=_section_from_dict(CloudflareSettings, cloudflare, _CLOUDFLARE_KEYS),
            speed_test=_section_from_dict(SpeedTestSettings, speed_test, {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cloudflare": _section_to_dict(self.cloudflare, _CLOUDFLARE_KEYS),
            "speed_test": _section_to_dict(self.speed_test, {}),
        }

    def with_field(self, section: str, name: str, value: Any) -> "ConfigurationRecord":
        """Return a new record with one field replaced and coerced to its type."""
        section_cls = _SECTIONS.get(section)
        if section_cls is None:
            raise ValidationFailure(f"unknown section: {section}")
        by_name = {f.name: f for f in fields(section_cls)}
        renames = _CLOUDFLARE_KEYS if section == "cloudflare" else {}
        name = renames.get(name, name)
        if name not in by_name:
            raise ValidationFailure(f"unknown field: {section}.{name}")
        current = getattr(self, section)
        updated = replace(current, **{name: _coerce(name, by_name[name].type, value)})
        return replace(self, **{section: updated})

    def domains_for(self, test_type: TestType) -> tuple[str, ...]:
        if test_type is TestType.IPV6:
            return self.cloudflare.domain_ipv6s
        return self.cloudflare.domains


def new_default_record() -> ConfigurationRecord:
    """Record written by "create new config"."""
    return ConfigurationRecord()


def apply_load_defaults(record: ConfigurationRecord) -> ConfigurationRecord:
    """Replace missing/zero defaulted fields with their defaults."""
    defaults = SpeedTestSettings()
    speed_test = record.speed_test
    updates: Dict[str, Any] = {}
    for name in DEFAULTED_FIELDS:
        if not getattr(speed_test, name):
            updates[name] = getattr(defaults, name)
    for name in _DEFAULTED_PATHS:
        if not getattr(speed_test, name):
            updates[name] = getattr(defaults, name)
    if not updates:
        return record
    return replace(record, speed_test=replace(speed_test, **updates))


def has_config_extension(name: str) -> bool:
    return name.endswith(CONFIG_EXTENSIONS)


def normalize_config_name(name: str) -> str:
    """Trim ``name`` and append ``.yaml`` unless it already has a config extension."""
    name = (name or "").strip()
    if not name:
        return ""
    if not has_config_extension(name):
        name += DEFAULT_EXTENSION
    return name


def split_lines(text: str) -> tuple[str, ...]:
    """Split newline-separated input into an ordered tuple of non-blank entries."""
    return tuple(line.strip() for line in text.splitlines() if line.strip())


__all__ = [
    "CONFIG_EXTENSIONS",
    "CloudflareSettings",
    "ConfigurationRecord",
    "DEFAULTED_FIELDS",
    "SpeedTestSettings",
    "TestType",
    "apply_load_defaults",
    "has_config_extension",
    "new_default_record",
    "normalize_config_name",
    "split_lines",
]
