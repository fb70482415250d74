from __future__ import annotations

from collections.abc import Iterable
from copy import deepcopy
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import AliasChoices, AliasPath

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides


@lru_cache(maxsize=1)
def _section_paths() -> dict[str, tuple[str, str]]:
    """Flat field name -> (section, key), read off AppConfig's AliasPaths.

    ``log_level`` -> ``("logging", "level")``; fields without a section
    (``app_name``, ``environment``) are absent.
    """
    paths: dict[str, tuple[str, str]] = {}
    for name, field in AppConfig.model_fields.items():
        alias = field.validation_alias
        if not isinstance(alias, AliasChoices):
            continue
        for choice in alias.choices:
            if isinstance(choice, AliasPath) and len(choice.path) == 2:
                section, key = choice.path
                paths[name] = (str(section), str(key))
    return paths


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *layer* into *target* in place; nested mappings merge, the rest replaces."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = deepcopy(value)
    return target


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape config.yaml uses.

    YAML is already sectioned; env and CLI layers arrive flat
    (``indexer_config_path``) and are moved under their section
    (``indexers.config_path``). Flat keys win over a section given in the
    same layer.
    """
    paths = _section_paths()
    sections = {section for section, _ in paths.values()}

    out: dict[str, Any] = {}
    for key, value in layer.items():
        if key in sections and isinstance(value, Mapping):
            _merge_into(out.setdefault(key, {}), value)
        elif key not in paths:
            out[key] = value

    for flat_key, (section, section_key) in paths.items():
        if flat_key in layer:
            out.setdefault(section, {})[section_key] = layer[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def _fold(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))
    return merged


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated AppConfig from all configuration layers.

    Precedence (later wins): defaults < YAML file < AGGREGARR_* env vars
    (including those from *dotenv_path*) < CLI overrides.

    Raises:
        FileNotFoundError: An explicitly given config or dotenv file is missing.
        ValueError: The YAML file is not a mapping.
        pydantic.ValidationError: The merged values are invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        # Real environment variables keep priority over the file.
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [DEFAULT_CONFIG]
    if config_path is not None:
        layers.append(_read_yaml_config(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    return AppConfig.model_validate(_fold(layers))
