from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

from relwrap.analyze.metadata import find_metadata, read_metadata
from relwrap.runtime.index import PlatformLibraryIndex

logger = logging.getLogger(__name__)

SENTINEL_VERSION = "0.0.0"


@dataclass(frozen=True)
class DependencyEntry:
    version: str
    location: Optional[Path]


DependencyTable = Dict[str, DependencyEntry]


def resolve_version(
    name: str,
    location: Optional[Path],
    *,
    main: str,
    fallback: str,
    declared: Optional[str] = None,
) -> str:
    """Version of ``name`` from its ``.app`` file.

    When the metadata has no usable ``vsn`` the main application gets
    ``fallback`` and other applications get the version declared by the
    build graph. Anything else gets the sentinel.
    """
    record = find_metadata(name, location)
    version = SENTINEL_VERSION
    if record is not None and record.version:
        version = record.version

    if version == SENTINEL_VERSION:
        if name == main:
            logger.debug(
                "No version in metadata for main application %s; using %s",
                name,
                fallback,
            )
            return fallback
        if declared:
            logger.debug("Using declared version %s for %s", declared, name)
            return declared
        logger.warning(
            "Got version %s for %s from %s", SENTINEL_VERSION, name, location
        )

    return version


def build_dependency_table(
    sources: Iterable[Tuple[str, Optional[Path]]],
    *,
    main: str,
    fallback: str,
    declared_versions: Optional[Mapping[str, str]] = None,
) -> DependencyTable:
    declared_versions = declared_versions or {}
    table: DependencyTable = {}
    for name, location in sources:
        if name in table:
            logger.debug("Ignoring duplicate dependency entry for %s", name)
            continue
        version = resolve_version(
            name,
            location,
            main=main,
            fallback=fallback,
            declared=declared_versions.get(name),
        )
        table[name] = DependencyEntry(version=version, location=location)
    return table


def installed_version(index: PlatformLibraryIndex, name: str) -> Optional[str]:
    app_file = index.resolve(name)
    if app_file is None:
        return None

    record = read_metadata(app_file)
    if record is None:
        logger.warning("Could not read installed metadata for %s at %s", name, app_file)
        return None

    return record.version or SENTINEL_VERSION
