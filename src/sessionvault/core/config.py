# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Layered configuration: library defaults, a YAML/TOML file, profile overlays and env vars.

Values are addressed with dotted keys (``sessionvault.session.url``) and are
bound onto pydantic models marked with :func:`config_properties`. Keys may be
written in ``kebab-case`` or ``snake_case`` in files.
"""

from __future__ import annotations

import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)

_PREFIX_ATTR = "__sessionvault_config_prefix__"
_ENV_PREFIX = "SESSIONVAULT_"
_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10
_MISSING = object()


def config_properties(prefix: str) -> Callable[[type[M]], type[M]]:
    """Bind a pydantic model to the configuration section at *prefix*."""

    def decorator(cls: type[M]) -> type[M]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def _walk(data: Mapping[str, Any], dotted: str) -> Any:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = _merge(current, value)
        else:
            result[key] = value
    return result


def _env_name(key: str) -> str:
    # sessionvault.session.table-name -> SESSIONVAULT_SESSION_TABLE_NAME
    tail = key.removeprefix("sessionvault.")
    return _ENV_PREFIX + re.sub(r"[.\-]", "_", tail).upper()


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with path.open("rb") as f:
            return tomllib.load(f)
    with path.open() as f:
        return yaml.safe_load(f) or {}


def _library_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("sessionvault.resources") / "sessionvault-defaults.yaml"
    return yaml.safe_load(resource.read_text()) or {}


class Config:
    """Read-only view over merged configuration data.

    Lookup order for :meth:`get` (first hit wins):

    1. ``SESSIONVAULT_<KEY>`` environment variable
    2. profile overlays, in the order given
    3. the configuration file
    4. library defaults
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    @classmethod
    def from_file(
        cls,
        path: str | Path | None = None,
        profiles: Iterable[str] = (),
        load_defaults: bool = True,
    ) -> Config:
        """Load *path* over the library defaults.

        For each profile ``p`` a sibling file ``{stem}-{p}{suffix}`` is merged
        on top when it exists. A missing *path* leaves only the defaults.
        """
        data = _library_defaults() if load_defaults else {}
        if path is None:
            return cls(data)

        path = Path(path)
        if not path.exists():
            return cls(data)
        data = _merge(data, _read_file(path))
        for profile in profiles:
            overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
            if overlay.exists():
                data = _merge(data, _read_file(overlay))
        return cls(data)

    def merged(self, overrides: Mapping[str, Any]) -> Config:
        """Return a new config with *overrides* laid over this one."""
        return Config(_merge(self._data, overrides))

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dotted *key*, with ``${ENV}``, ``${other.key}`` and ``${X:fallback}`` expanded."""
        env_value = os.environ.get(_env_name(key))
        if env_value is not None:
            return env_value

        value = _walk(self._data, key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._interpolate(value)
        return value

    def _interpolate(self, value: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Placeholders in '{value}' nest too deeply; check for a circular reference")

        def substitute(match: re.Match[str]) -> str:
            ref, has_fallback, fallback = match.group(1).partition(":")
            if ref in os.environ:
                return os.environ[ref]
            found = _walk(self._data, ref)
            if found is not _MISSING and found is not None:
                text = str(found)
                return self._interpolate(text, depth + 1) if "${" in text else text
            if has_fallback:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{match.group(1)}}}': not found in environment or config")

        return _PLACEHOLDER_RE.sub(substitute, value)

    def _lookup(self, prefix: str, field: str) -> Any:
        for name in (field, field.replace("_", "-")):
            value = self.get(f"{prefix}.{name}", _MISSING)
            if value is not _MISSING:
                return value
        return _MISSING

    def bind(self, model: type[M]) -> M:
        """Build *model* from its ``@config_properties`` section; unset fields keep their defaults."""
        prefix = getattr(model, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{model.__name__} is not decorated with @config_properties")

        values: dict[str, Any] = {}
        for field in model.model_fields:
            value = self._lookup(prefix, field)
            if value is not _MISSING:
                values[field] = value
        try:
            return model.model_validate(values)
        except ValidationError as exc:
            raise ValueError(f"Configuration validation failed for '{model.__name__}' (prefix='{prefix}'):\n{exc}") from exc
