from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from relwrap.runtime.erlang import ErlangRuntime

logger = logging.getLogger(__name__)


class PlatformLibraryIndex(Protocol):
    def resolve(self, name: str) -> Optional[Path]:
        """Return the installed ``.app`` file for ``name``, if any."""
        ...


class StaticLibraryIndex:
    def __init__(self, entries: Mapping[str, Path]) -> None:
        self._entries = entries

    def resolve(self, name: str) -> Optional[Path]:
        path = self._entries.get(name)
        if path is None or not path.is_file():
            return None
        return path


class OtpLibraryIndex:
    """Looks up applications installed under one or more ``lib`` roots.

    Entries are ``<root>/<name>`` or ``<root>/<name>-<vsn>`` directories with
    an ``ebin/<name>.app`` file. When several versions are installed the
    highest one wins; earlier roots take precedence on ties.
    """

    def __init__(self, lib_dirs: Sequence[Path]) -> None:
        self.lib_dirs = list(lib_dirs)
        self._scanned: Optional[Dict[str, List[Tuple[tuple, int, Path]]]] = None

    @classmethod
    def from_runtime(
        cls,
        runtime: ErlangRuntime,
        extra_dirs: Iterable[Path] = (),
    ) -> "OtpLibraryIndex":
        return cls([*extra_dirs, runtime.lib_dir])

    def resolve(self, name: str) -> Optional[Path]:
        candidates = self._scan().get(name)
        if not candidates:
            return None

        for _, _, app_dir in sorted(candidates, key=lambda c: (c[0], c[1]), reverse=True):
            app_file = app_dir / "ebin" / f"{name}.app"
            if app_file.is_file():
                return app_file
        return None

    def _scan(self) -> Dict[str, List[Tuple[tuple, int, Path]]]:
        if self._scanned is not None:
            return self._scanned

        found: Dict[str, List[Tuple[tuple, int, Path]]] = {}
        for priority, root in enumerate(self.lib_dirs):
            if not root.is_dir():
                logger.debug("Skipping missing library root %s", root)
                continue
            for entry in root.iterdir():
                if not entry.is_dir():
                    continue
                name, version = split_versioned_name(entry.name)
                found.setdefault(name, []).append(
                    (version_key(version), -priority, entry)
                )

        self._scanned = found
        return found


def split_versioned_name(dirname: str) -> Tuple[str, str]:
    name, sep, version = dirname.rpartition("-")
    if sep and name and version and version[0].isdigit():
        return name, version
    return dirname, ""


_VERSION_PART = re.compile(r"\d+|[^\d.]+")


def version_key(version: str) -> tuple:
    key = []
    for part in _VERSION_PART.findall(version):
        if part.isdigit():
            key.append((1, int(part), ""))
        else:
            key.append((0, 0, part))
    return tuple(key)
