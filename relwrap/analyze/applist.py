from __future__ import annotations

import logging
from typing import Iterable, List, NamedTuple, Optional, Set

from relwrap.analyze.platform import FOUNDATIONAL_LIBRARIES
from relwrap.analyze.versions import (
    SENTINEL_VERSION,
    DependencyTable,
    installed_version,
)
from relwrap.runtime.index import PlatformLibraryIndex

logger = logging.getLogger(__name__)


class ReleaseApp(NamedTuple):
    name: str
    version: str


def build_app_list(
    main: str,
    table: DependencyTable,
    platform_libs: Iterable[str],
    index: PlatformLibraryIndex,
) -> List[ReleaseApp]:
    """Order the release's applications.

    Foundational libraries come first, then platform applications, then
    the remaining build dependencies in table order, and ``main`` last.
    A version already present in ``table`` always wins over the one
    installed with the runtime.
    """
    apps: List[ReleaseApp] = []
    placed: Set[str] = set()

    def place(name: str, version: str) -> None:
        apps.append(ReleaseApp(name, version))
        placed.add(name)

    for name in FOUNDATIONAL_LIBRARIES:
        if name == main:
            continue
        place(name, _known_version(name, table, index) or SENTINEL_VERSION)

    for name in sorted(set(platform_libs)):
        if name in placed or name == main:
            continue

        entry = table.get(name)
        if entry is not None and entry.version != SENTINEL_VERSION:
            logger.debug("Including platform application %s: %s (from deps)", name, entry.version)
            place(name, entry.version)
            continue

        version = installed_version(index, name)
        if version is None:
            logger.warning("Requested platform application %s not found; leaving it out", name)
            continue

        logger.debug("Including platform application %s: %s", name, version)
        place(name, version)

    for name, entry in table.items():
        if name in placed or name == main:
            continue
        place(name, entry.version)

    place(main, _known_version(main, table, index) or SENTINEL_VERSION)

    for app in apps:
        logger.debug("Release application %s: %s", app.name, app.version)
    return apps


def _known_version(
    name: str,
    table: DependencyTable,
    index: PlatformLibraryIndex,
) -> Optional[str]:
    entry = table.get(name)
    if entry is not None:
        return entry.version
    return installed_version(index, name)
