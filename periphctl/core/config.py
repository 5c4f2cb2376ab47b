"""Configuration loading and validation for periphctl."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from periphctl.core.errors import ConfigLoadError, ConfigValidationError
from periphctl.core.model import DeviceProfile, Settings, Timeouts

_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$")
_CORE_BLUETOOTH_ID_RE = re.compile(
    r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$"
)
CONFIG_ENV_VAR = "PERIPHCTL_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    source: Path | None
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("periphctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "periphctl/config.yml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def normalize_address(value: str, *, context: str) -> str:
    """Upper-case a MAC address (or CoreBluetooth identifier) and check its shape."""
    normalized = value.strip().upper()
    if len(normalized) == 17:
        normalized = normalized.replace("-", ":")
    if not (_MAC_RE.match(normalized) or _CORE_BLUETOOTH_ID_RE.match(normalized)):
        raise ConfigValidationError(
            f"{context} must be a MAC address (AA:BB:CC:DD:EE:FF) or a CoreBluetooth UUID"
        )
    return normalized


def _build_settings(doc: dict[str, Any], source: Path) -> Settings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Timeouts()
    raw_timeouts = doc.get("timeouts", {})
    timeouts = Timeouts(
        connect_s=float(raw_timeouts.get("connect_s", defaults.connect_s)),
        discover_s=float(raw_timeouts.get("discover_s", defaults.discover_s)),
        disconnect_s=float(raw_timeouts.get("disconnect_s", defaults.disconnect_s)),
        read_s=float(raw_timeouts.get("read_s", defaults.read_s)),
        write_s=float(raw_timeouts.get("write_s", defaults.write_s)),
    )

    devices: dict[str, DeviceProfile] = {}
    for name, spec in doc.get("devices", {}).items():
        devices[name] = DeviceProfile(
            name=name,
            address=normalize_address(spec["address"], context=f"devices.{name}.address"),
        )

    return Settings(
        timeouts=timeouts,
        cancel_on_timeout=bool(doc.get("cancel_on_timeout", False)),
        devices=devices,
    )


def load_settings(path: Path | None = None) -> LoadedSettings:
    source = path or config_path()
    if not source.exists():
        if path is not None:
            raise ConfigLoadError(f"Config file {source} does not exist")
        LOGGER.debug("No config file at %s; using defaults", source)
        return LoadedSettings(settings=Settings(), source=None, warnings=())

    settings = _build_settings(_read_yaml(source), source)

    warnings: list[str] = []
    addresses: dict[str, str] = {}
    for profile in settings.devices.values():
        other = addresses.get(profile.address)
        if other is not None:
            warning = f"Devices '{other}' and '{profile.name}' share address {profile.address}"
            LOGGER.warning(warning)
            warnings.append(warning)
        addresses.setdefault(profile.address, profile.name)

    return LoadedSettings(settings=settings, source=source, warnings=tuple(warnings))
