"""
Access catalog configuration loader.

Builds the immutable AccessCatalog handed to the CatalogSeeder. The catalog
comes from the YAML file named by ACCESS_CATALOG_PATH when set, otherwise
from the built-in tables in src/constants/access_catalog.py.

YAML layout:

    version: 1
    flags:
      - {code: domains.custom, name: Custom domain, description: ...}
    permissions:
      - {code: billing.manage, name: Manage billing}
    role_permissions:
      OWNER: [billing.manage, ...]
      ADMIN: [...]
      STAFF: [...]

Usage:
    from src.config.access_catalog import get_access_catalog

    catalog = get_access_catalog()
    CatalogSeeder(db, catalog).ensure_catalog()
"""

import logging
import os
from pathlib import Path
from threading import Lock
from types import MappingProxyType
from typing import Any, Dict, List, Optional

import yaml

from src.constants.access_catalog import (
    AccessCatalog,
    CatalogEntry,
    StudioRole,
    DEFAULT_ACCESS_CATALOG,
)
from src.entitlements.errors import AccessCatalogError

logger = logging.getLogger(__name__)

CATALOG_PATH_ENV = "ACCESS_CATALOG_PATH"


def _parse_entries(raw: Any, section: str) -> tuple:
    if not isinstance(raw, list) or not raw:
        raise AccessCatalogError(f"'{section}' must be a non-empty list")

    entries: List[CatalogEntry] = []
    seen = set()
    for item in raw:
        if not isinstance(item, dict):
            raise AccessCatalogError(f"'{section}' entries must be mappings, got {item!r}")
        code = item.get("code")
        name = item.get("name")
        if not code or not isinstance(code, str):
            raise AccessCatalogError(f"'{section}' entry is missing a code: {item!r}")
        if not name or not isinstance(name, str):
            raise AccessCatalogError(f"'{section}' entry {code} is missing a name")
        if code in seen:
            raise AccessCatalogError(f"Duplicate code in '{section}': {code}")
        seen.add(code)
        entries.append(CatalogEntry(code=code, name=name, description=item.get("description")))
    return tuple(entries)


def parse_access_catalog(raw: Dict[str, Any]) -> AccessCatalog:
    """
    Validate a raw mapping and build an AccessCatalog.

    Raises:
        AccessCatalogError: on any structural problem, unknown role, or a
            role granted a permission code that is not in the catalog.
    """
    if not isinstance(raw, dict):
        raise AccessCatalogError("Access catalog must be a mapping")

    flags = _parse_entries(raw.get("flags"), "flags")
    permissions = _parse_entries(raw.get("permissions"), "permissions")
    known_permissions = {p.code for p in permissions}

    raw_matrix = raw.get("role_permissions")
    if not isinstance(raw_matrix, dict):
        raise AccessCatalogError("'role_permissions' must be a mapping of role -> codes")

    valid_roles = {r.value for r in StudioRole}
    unknown_roles = set(raw_matrix) - valid_roles
    if unknown_roles:
        raise AccessCatalogError(f"Unknown studio roles: {sorted(unknown_roles)}")
    missing_roles = valid_roles - set(raw_matrix)
    if missing_roles:
        raise AccessCatalogError(f"Missing studio roles: {sorted(missing_roles)}")

    matrix = {}
    for role, codes in raw_matrix.items():
        codes = codes or []
        if not isinstance(codes, list):
            raise AccessCatalogError(f"Permissions for role {role} must be a list")
        unknown = set(codes) - known_permissions
        if unknown:
            raise AccessCatalogError(
                f"Role {role} is granted unknown permissions: {sorted(unknown)}"
            )
        matrix[role] = frozenset(codes)

    return AccessCatalog(
        flags=flags,
        permissions=permissions,
        role_permissions=MappingProxyType(matrix),
    )


class AccessCatalogLoader:
    """
    Thread-safe singleton loader for the access catalog.

    The catalog is read once; call reload() after editing the YAML file.
    """

    _instance: Optional["AccessCatalogLoader"] = None
    _lock = Lock()

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized:
            return

        self._config_path = config_path or os.getenv(CATALOG_PATH_ENV)
        self._catalog: AccessCatalog = DEFAULT_ACCESS_CATALOG
        self._load_lock = Lock()

        self._load()
        self._initialized = True

    def _load(self) -> None:
        with self._load_lock:
            if not self._config_path:
                logger.debug("No access catalog path configured, using built-in catalog")
                self._catalog = DEFAULT_ACCESS_CATALOG
                return

            path = Path(self._config_path)
            try:
                with open(path, "r") as f:
                    raw = yaml.safe_load(f) or {}
            except FileNotFoundError:
                logger.warning(
                    "access catalog file not found, using built-in catalog",
                    extra={"path": str(path)},
                )
                self._catalog = DEFAULT_ACCESS_CATALOG
                return
            except yaml.YAMLError as e:
                raise AccessCatalogError(f"Invalid YAML in access catalog {path}: {e}") from e

            self._catalog = parse_access_catalog(raw)
            logger.info(
                "Loaded access catalog from %s: flags=%d, permissions=%d",
                path,
                len(self._catalog.flags),
                len(self._catalog.permissions),
            )

    def reload(self) -> None:
        """Re-read the YAML from disk."""
        self._load()

    @property
    def catalog(self) -> AccessCatalog:
        return self._catalog


def get_access_catalog(config_path: Optional[str] = None) -> AccessCatalog:
    """Return the process-wide AccessCatalog."""
    return AccessCatalogLoader(config_path).catalog


def reset_access_catalog_loader() -> None:
    """Reset singleton (for tests only)."""
    AccessCatalogLoader._instance = None
