# src/messenger/wire_config.py
from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml  # PyYAML

from messenger.core import log
from messenger.core.contracts import Handler
from messenger.core.registry import Registry


class ConfigError(ValueError):
    """Bad shape or value in a messenger YAML file."""


@dataclass
class MessengerConfig:
    log_level: str | None = None
    log_json: bool | None = None
    name: str = "messenger.registry"
    metrics: bool = True
    subscriptions: List[Tuple[str, str]] = field(default_factory=list)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    sec = data.get(key) or {}
    if not isinstance(sec, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return sec


def parse_config(data: Any) -> MessengerConfig:
    if data is None:
        return MessengerConfig()
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping")

    log_cfg = _section(data, "log")
    reg_cfg = _section(data, "registry")

    subs: List[Tuple[str, str]] = []
    raw_subs = data.get("subscriptions") or []
    if not isinstance(raw_subs, list):
        raise ConfigError("'subscriptions' must be a list")
    for i, s in enumerate(raw_subs):
        if not isinstance(s, dict) or not isinstance(s.get("topic"), str) or not isinstance(s.get("handler"), str):
            raise ConfigError(f"subscriptions[{i}] needs string 'topic' and 'handler'")
        subs.append((s["topic"], s["handler"]))

    level = log_cfg.get("level")
    if level is not None and not isinstance(level, str):
        raise ConfigError("'log.level' must be a string")
    json_flag = log_cfg.get("json")
    if json_flag is not None and not isinstance(json_flag, bool):
        raise ConfigError("'log.json' must be true or false")
    metrics_flag = reg_cfg.get("metrics", True)
    if not isinstance(metrics_flag, bool):
        raise ConfigError("'registry.metrics' must be true or false")

    return MessengerConfig(
        log_level=level,
        log_json=json_flag,
        name=str(reg_cfg.get("name", MessengerConfig.name)),
        metrics=metrics_flag,
        subscriptions=subs,
    )


def load_config(yaml_path: str | Path) -> MessengerConfig:
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
    return parse_config(data)


def resolve_handler(ref: str) -> Handler:
    """'pkg.module:attr.sub' -> the callable it names."""
    module, sep, attr = ref.partition(":")
    if not sep or not module or not attr:
        raise ConfigError(f"handler reference must look like 'module:function', got {ref!r}")
    try:
        obj: Any = importlib.import_module(module)
    except ModuleNotFoundError as e:
        # a missing dependency of an existing module is not a config mistake
        if e.name and not (module + ".").startswith(e.name + "."):
            raise
        raise ConfigError(f"{ref!r}: cannot import module {module!r}") from e
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"{ref!r}: no attribute {part!r}") from e
    if not callable(obj):
        raise ConfigError(f"{ref!r} is not callable")
    return obj


def build_from_yaml(yaml_path: str | Path, *, setup_logging: bool = True) -> Registry:
    """Read a messenger YAML file and return a registry with its subscriptions wired."""
    cfg = load_config(yaml_path)
    if setup_logging:
        log.setup(cfg.log_level, cfg.log_json, force=True)

    reg = Registry(cfg.name, metrics=cfg.metrics)
    for topic, ref in cfg.subscriptions:
        reg.register(topic, resolve_handler(ref))
    log.get(__name__).info("wired %d subscription(s) from %s", len(cfg.subscriptions), yaml_path)
    return reg
