"""Account persistence driven by ``config/storage.toml``.

Every account lives in its own TOML file holding the credential and the player
payload. Collections are looked up from ``config/storage.toml`` which specifies
their relative path and schema version. Schema upgrades run through
``migrations/<collection>/`` scripts, with the applied version tracked in a
``schema_version.toml`` file next to the stored data.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import math
import os
import re
import tempfile
from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional
from urllib.parse import quote, unquote

import tomllib

log = logging.getLogger(__name__)

_STORAGE_LOCK = asyncio.Lock()

ACCOUNTS = "accounts"

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def _is_site_packages(path: Path) -> bool:
    normalized = {part.lower() for part in path.parts}
    return "site-packages" in normalized or "dist-packages" in normalized


def resolve_storage_root(package_root: Path) -> Path:
    """Determine where mutable data should be stored.

    ``DARKRPG_DATA_ROOT`` wins when set. Otherwise data is kept next to the
    source tree, or in the working directory when the package is installed
    somewhere read-only.
    """

    override = os.getenv("DARKRPG_DATA_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    if _is_site_packages(package_root) or not os.access(package_root, os.W_OK):
        return Path.cwd().resolve()

    return package_root


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------


def _normalize_for_toml(value: Any) -> Any:
    # TOML has no null, so ``None`` entries are dropped and re-filled on load.
    if isinstance(value, MappingProxyType):
        value = dict(value)
    if isinstance(value, Mapping):
        normalized: Dict[str, Any] = {}
        for key, item in value.items():
            if item is None:
                continue
            normalized[str(key)] = _normalize_for_toml(item)
        return normalized
    if isinstance(value, (list, tuple)):
        return [_normalize_for_toml(item) for item in value if item is not None]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, bool)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0.0
        return value
    return str(value)


def _quote_string(value: str) -> str:
    replacements = {
        "\\": "\\\\",
        '"': '\\"',
        "\b": "\\b",
        "\t": "\\t",
        "\n": "\\n",
        "\f": "\\f",
        "\r": "\\r",
    }

    def _escape_char(char: str) -> str:
        if char in replacements:
            return replacements[char]
        code = ord(char)
        if 0x20 <= code <= 0x7E:
            return char
        if code > 0xFFFF:
            return f"\\U{code:08x}"
        return f"\\u{code:04x}"

    return '"' + "".join(_escape_char(char) for char in value) + '"'


def _format_key(key: str) -> str:
    # Item names carry spaces and apostrophes.
    if _BARE_KEY.match(key):
        return key
    return _quote_string(key)


def _format_toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # repr round-trips exactly, which keeps timestamps to the sub-second.
        return repr(value)
    if isinstance(value, str):
        return _quote_string(value)
    if isinstance(value, list):
        if value and all(isinstance(item, Mapping) for item in value):
            raise TypeError("Nested table arrays handled separately")
        return "[" + ", ".join(_format_toml_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        raise TypeError("Mappings must be serialised via table handlers")
    return _quote_string(str(value))


def _serialize_table(
    data: Mapping[str, Any],
    *,
    parent: tuple[str, ...] = (),
    output: list[str],
) -> None:
    simple_items: list[tuple[str, Any]] = []
    tables: list[tuple[str, Mapping[str, Any]]] = []
    array_tables: list[tuple[str, list[Mapping[str, Any]]]] = []

    for key, value in data.items():
        if isinstance(value, Mapping):
            tables.append((key, value))
        elif isinstance(value, list) and value and all(
            isinstance(item, Mapping) for item in value
        ):
            array_tables.append((key, value))
        else:
            simple_items.append((key, value))

    for key, value in simple_items:
        output.append(f"{_format_key(key)} = {_format_toml_value(value)}")

    for key, value in tables:
        path = (*parent, key)
        if output and output[-1] != "":
            output.append("")
        output.append(f"[{'.'.join(_format_key(part) for part in path)}]")
        _serialize_table(value, parent=path, output=output)

    for key, items in array_tables:
        path = (*parent, key)
        for item in items:
            if output and output[-1] != "":
                output.append("")
            output.append(f"[[{'.'.join(_format_key(part) for part in path)}]]")
            _serialize_table(item, parent=path, output=output)


def _toml_dumps(data: Mapping[str, Any]) -> str:
    normalized = _normalize_for_toml(data)
    if not isinstance(normalized, Mapping):
        raise TypeError("Top level TOML document must be a mapping")
    output: list[str] = []
    _serialize_table(normalized, output=output)
    return "\n".join(output) + "\n"


def _read_toml(path: Path) -> Any:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return None
    except (tomllib.TOMLDecodeError, OSError) as exc:
        log.warning("Could not read %s: %s", path, exc)
        return None


def _write_toml(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    data = _toml_dumps(payload)
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf8", dir=path.parent, delete=False
        ) as handle:
            temp_path = Path(handle.name)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass


# ---------------------------------------------------------------------------
# Configuration handling
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CollectionConfig:
    name: str
    path: str
    version: int
    migration_key: str | None = None

    def resolve_path(self, base: Path, *, key: str) -> Path:
        return base / self.path.format(key=key)

    def record_directory(self, base: Path) -> Path:
        return self.resolve_path(base, key="__dummy__").parent


def _load_storage_config(path: Path) -> dict[str, CollectionConfig]:
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise RuntimeError(f"Missing storage configuration at {path}") from exc

    collections: dict[str, CollectionConfig] = {}
    raw_collections = payload.get("collections") if isinstance(payload, Mapping) else None
    if not isinstance(raw_collections, Mapping):
        raise RuntimeError("storage configuration must define a [collections] table")

    for name, options in raw_collections.items():
        if not isinstance(options, Mapping):
            continue
        path_value = str(options.get("path", "")).strip()
        if "{key}" not in path_value:
            raise RuntimeError(f"Collection {name!r} needs a path containing '{{key}}'")
        migration_key = options.get("migration")
        collections[str(name)] = CollectionConfig(
            name=str(name),
            path=path_value,
            version=int(options.get("version", 0)),
            migration_key=str(migration_key) if migration_key else str(name),
        )
    return collections


# ---------------------------------------------------------------------------
# Migration runner
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class MigrationModule:
    from_version: int
    to_version: int
    apply: Callable[["MigrationContext"], None]
    description: str


@dataclass(slots=True)
class MigrationContext:
    collection: CollectionConfig
    base: Path
    scope_path: Path

    def records(self) -> list[Path]:
        return sorted(self.scope_path.glob("*.toml"))

    def read(self, path: Path) -> Optional[dict[str, Any]]:
        payload = _read_toml(path)
        return dict(payload) if isinstance(payload, MutableMapping) else None

    def write(self, path: Path, payload: Mapping[str, Any]) -> None:
        _write_toml(path, payload)

    def log(self, message: str, *args: Any) -> None:
        log.info("[migration:%s] " + message, self.collection.name, *args)


class MissingMigrationError(RuntimeError):
    pass


class VersionManager:
    def __init__(
        self,
        *,
        base: Path,
        collections: Mapping[str, CollectionConfig],
        migrations_base: Path,
    ) -> None:
        self._base = base
        self._collections = collections
        self._migrations_base = migrations_base
        self._cache: dict[str, int] = {}
        self._modules: dict[str, list[MigrationModule]] = {}

    def ensure(self, collection: CollectionConfig) -> None:
        migration_key = collection.migration_key or collection.name
        current = self._cache.get(migration_key)
        if current is None:
            current = self.read_version(collection)
            self._cache[migration_key] = current
        target = collection.version
        if current >= target:
            return

        migrations = self._load_migrations(migration_key)
        plan: list[MigrationModule] = []
        version = current
        while version < target:
            step = next((m for m in migrations if m.from_version == version), None)
            if step is None:
                raise MissingMigrationError(
                    f"Missing migration for {collection.name!r}: {version} -> {target}"
                )
            plan.append(step)
            version = step.to_version

        if version != target:
            raise MissingMigrationError(
                f"Incomplete migration chain for {collection.name!r}: {current} -> {target}"
            )

        scope_path = collection.record_directory(self._base).resolve()
        scope_path.mkdir(parents=True, exist_ok=True)
        context = MigrationContext(collection=collection, base=self._base, scope_path=scope_path)
        for step in plan:
            log.info(
                "Migrating %s %s -> %s: %s",
                collection.name,
                step.from_version,
                step.to_version,
                step.description,
            )
            step.apply(context)
            self._cache[migration_key] = step.to_version
        self._write_version(collection, target)
        self._cache[migration_key] = target

    def _versions_file(self, collection: CollectionConfig) -> Path:
        return collection.record_directory(self._base).resolve() / "schema_version.toml"

    def read_version(self, collection: CollectionConfig) -> int:
        payload = _read_toml(self._versions_file(collection))
        if not isinstance(payload, Mapping):
            return 0
        collections = payload.get("collections")
        if not isinstance(collections, Mapping):
            return 0
        version = collections.get(collection.migration_key or collection.name)
        try:
            return int(version)
        except (TypeError, ValueError):
            return 0

    def _write_version(self, collection: CollectionConfig, version: int) -> None:
        path = self._versions_file(collection)
        payload = _read_toml(path)
        if not isinstance(payload, MutableMapping):
            payload = {"collections": {}}
        collections = payload.setdefault("collections", {})
        if not isinstance(collections, MutableMapping):
            collections = {}
            payload["collections"] = collections
        collections[collection.migration_key or collection.name] = int(version)
        _write_toml(path, payload)

    def _load_migrations(self, collection: str) -> list[MigrationModule]:
        cached = self._modules.get(collection)
        if cached is not None:
            return cached
        directory = self._migrations_base / collection
        modules: list[MigrationModule] = []
        if directory.is_dir():
            for path in sorted(directory.glob("*.py")):
                if path.name.startswith("__"):
                    continue
                spec = importlib.util.spec_from_file_location(
                    f"migrations.{collection}.{path.stem}", path
                )
                if spec is None or spec.loader is None:
                    continue
                module = importlib.util.module_from_spec(spec)
                try:
                    spec.loader.exec_module(module)
                except Exception:
                    log.exception("Failed to load migration %s", path)
                    continue
                from_version = getattr(module, "FROM_VERSION", None)
                to_version = getattr(module, "TO_VERSION", None)
                apply = getattr(module, "apply", None)
                if not isinstance(from_version, int) or not isinstance(to_version, int):
                    continue
                if not callable(apply):
                    continue
                modules.append(
                    MigrationModule(
                        from_version=from_version,
                        to_version=to_version,
                        apply=apply,
                        description=str(getattr(module, "DESCRIPTION", path.stem)),
                    )
                )
        modules.sort(key=lambda module: module.from_version)
        self._modules[collection] = modules
        return modules


# ---------------------------------------------------------------------------
# DataStore implementation
# ---------------------------------------------------------------------------


class DataStore:
    """Asynchronous key-value store of account records.

    A record is ``{"credential": str, "player": {...}}``. Writes replace the
    whole file atomically; the last write wins.
    """

    def __init__(self, storage_root: Path | None = None) -> None:
        self._package_root = Path(__file__).resolve().parent.parent
        self._storage_root = (
            Path(storage_root) if storage_root is not None
            else resolve_storage_root(self._package_root)
        )
        self._config_path = self._package_root / "config" / "storage.toml"
        self._collections = _load_storage_config(self._config_path)
        self._versions = VersionManager(
            base=self._storage_root,
            collections=self._collections,
            migrations_base=self._package_root / "migrations",
        )

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    async def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        async with _STORAGE_LOCK:
            return self._read_record(self._collection(ACCOUNTS), username)

    async def account_exists(self, username: str) -> bool:
        async with _STORAGE_LOCK:
            config = self._collection(ACCOUNTS)
            self._versions.ensure(config)
            return self._record_path(config, username).exists()

    async def put_account(self, username: str, record: Mapping[str, Any]) -> None:
        async with _STORAGE_LOCK:
            config = self._collection(ACCOUNTS)
            self._versions.ensure(config)
            _write_toml(self._record_path(config, username), deepcopy(dict(record)))

    async def update_player(self, username: str, player: Mapping[str, Any]) -> bool:
        """Replace the player payload of an existing account, keeping its credential."""

        async with _STORAGE_LOCK:
            config = self._collection(ACCOUNTS)
            record = self._read_record(config, username)
            if record is None:
                log.warning("Refusing to save player %s without an account", username)
                return False
            record["player"] = deepcopy(dict(player))
            _write_toml(self._record_path(config, username), record)
            return True

    async def delete_account(self, username: str) -> bool:
        async with _STORAGE_LOCK:
            config = self._collection(ACCOUNTS)
            self._versions.ensure(config)
            try:
                self._record_path(config, username).unlink()
            except FileNotFoundError:
                return False
            return True

    async def list_accounts(self) -> dict[str, Dict[str, Any]]:
        async with _STORAGE_LOCK:
            config = self._collection(ACCOUNTS)
            self._versions.ensure(config)
            directory = config.record_directory(self._storage_root)
            if not directory.exists():
                return {}
            result: dict[str, Dict[str, Any]] = {}
            for path in sorted(directory.glob("*.toml")):
                if path.name == "schema_version.toml":
                    continue
                payload = _read_toml(path)
                if isinstance(payload, MutableMapping):
                    result[_decode_collection_key(path.stem)] = dict(payload)
            return result

    def _collection(self, name: str) -> CollectionConfig:
        try:
            return self._collections[name]
        except KeyError as exc:
            raise KeyError(f"Unknown collection: {name}") from exc

    def _record_path(self, config: CollectionConfig, key: str) -> Path:
        return config.resolve_path(self._storage_root, key=_encode_collection_key(key))

    def _read_record(self, config: CollectionConfig, key: str) -> Optional[Dict[str, Any]]:
        self._versions.ensure(config)
        payload = _read_toml(self._record_path(config, key))
        if isinstance(payload, MutableMapping):
            return dict(payload)
        return None


def _encode_collection_key(key: str) -> str:
    return quote(str(key), safe="")


def _decode_collection_key(filename: str) -> str:
    return unquote(filename)


__all__ = [
    "ACCOUNTS",
    "DataStore",
    "MigrationContext",
    "MissingMigrationError",
    "resolve_storage_root",
]
