from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    name: str
    files: Tuple[Path, ...] = ()
    resources: Tuple[Path, ...] = ()
    dependencies: Tuple["Component", ...] = field(default=(), repr=False)
    version: Optional[str] = None

    @property
    def location(self) -> Optional[Path]:
        if not self.files:
            return None
        first = self.files[0]
        if first.is_dir():
            return first
        return first.parent


def transitive_closure(roots: Iterable[Component]) -> Set[Component]:
    visited: Dict[str, Component] = {}
    frontier: List[Component] = list(roots)

    while frontier:
        component = frontier.pop(0)
        if component.name in visited:
            continue

        visited[component.name] = component

        for dependency in component.dependencies:
            if dependency.name not in visited:
                frontier.append(dependency)

    logger.debug(
        "Dependency closure: %s", ", ".join(sorted(visited))
    )
    return set(visited.values())
