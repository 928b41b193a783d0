"""Layer settings sources (defaults, file, environment, explicit overrides)."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import CntxConfig

ENV_PREFIX = "CNTX__"


def resolve_with_precedence(
    *,
    defaults: CntxConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> CntxConfig:
    """Merge settings so that later sources win: file, then environment, then explicit.

    Args:
        defaults: Baseline settings.
        file_overrides: Values read from ``settings.yaml``.
        env_overrides: Values decoded from ``CNTX__`` environment variables.
        cli_overrides: Caller supplied values; keys may be dotted paths.

    Returns:
        CntxConfig: Validated settings.

    Raises:
        ConfigError: If a source is not a mapping or the merged result is invalid.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("explicit", cli_overrides))
    for label, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, label))

    try:
        return CntxConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Decode ``CNTX__SECTION__KEY=value`` variables into a nested mapping.

    Values are parsed as YAML scalars so ``CNTX__SCAN__READ_WORKERS=4`` yields an int.
    """
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        node = overrides
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    return overrides


def _expand_dotted(source: Mapping[str, Any], label: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = result
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{label.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        if isinstance(value, MappingABC):
            nested = _expand_dotted(value, label)
            current = node.get(leaf)
            node[leaf] = _deep_merge(current if isinstance(current, dict) else {}, nested)
        else:
            node[leaf] = value
    return result


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "parse_env_overrides"]
