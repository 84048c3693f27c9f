"""Detection of platform applications a release needs implicitly.

Build-time dependency lists only name the applications a build knows
about. Applications that ship with the runtime (``crypto``, ``ssl``,
``public_key`` ...) are often reached only through ``.app`` declarations,
so they are recovered here from the metadata of the known components and
then expanded through the installed runtime's own metadata.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Set

from relwrap.analyze.metadata import find_metadata, read_metadata
from relwrap.analyze.versions import DependencyTable
from relwrap.runtime.index import PlatformLibraryIndex

logger = logging.getLogger(__name__)

FOUNDATIONAL_LIBRARIES = ("kernel", "stdlib")


def detect_platform_libraries(
    table: DependencyTable,
    requested_extra: Iterable[str] = (),
) -> Set[str]:
    declared: Set[str] = set()

    for name, entry in table.items():
        record = find_metadata(name, entry.location)
        if record is None:
            logger.debug("No metadata for %s; skipping dependency scan", name)
            continue
        logger.debug("Found deps for %s: %s", name, sorted(record.all_dependencies))
        declared |= record.all_dependencies

    detected = {
        name
        for name in declared
        if name not in table and name not in FOUNDATIONAL_LIBRARIES
    }
    logger.debug("Auto-detected platform applications: %s", sorted(detected))

    return detected | set(requested_extra)


def expand_transitively(
    initial: Iterable[str],
    index: PlatformLibraryIndex,
) -> Set[str]:
    visited: Set[str] = set()
    result: Set[str] = set()
    queue: List[str] = sorted(set(initial))

    while queue:
        name = queue.pop(0)
        if name in visited:
            continue
        visited.add(name)
        result.add(name)

        app_file = index.resolve(name)
        if app_file is None:
            logger.debug("Platform application %s is not installed", name)
            continue

        record = read_metadata(app_file)
        if record is None:
            continue

        for dependency in sorted(record.dependencies):
            if dependency not in visited and dependency not in FOUNDATIONAL_LIBRARIES:
                queue.append(dependency)

    expanded = result - set(FOUNDATIONAL_LIBRARIES)
    logger.debug(
        "Platform applications with transitive deps: %s", sorted(expanded)
    )
    return expanded
