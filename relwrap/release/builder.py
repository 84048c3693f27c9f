from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from relwrap.analyze.applist import build_app_list
from relwrap.analyze.platform import detect_platform_libraries, expand_transitively
from relwrap.analyze.versions import build_dependency_table
from relwrap.config import ReleaseConfig
from relwrap.release.boot import BootCompiler
from relwrap.release.emitter import ReleaseArtifacts, emit_release
from relwrap.runtime.index import PlatformLibraryIndex
from relwrap.utils.fs import ensure_dir

logger = logging.getLogger(__name__)


def build_release(
    config: ReleaseConfig,
    deps: Sequence[Tuple[str, Optional[Path]]],
    *,
    index: PlatformLibraryIndex,
    boot_compiler: BootCompiler,
    runtime_version: str,
    extra_apps: Sequence[str] = (),
    declared_versions: Optional[Mapping[str, str]] = None,
) -> ReleaseArtifacts:
    boot_compiler.ensure_available()

    ensure_dir(config.output_dir)

    table = build_dependency_table(
        deps,
        main=config.app_name,
        fallback=config.app_version,
        declared_versions=declared_versions,
    )
    logger.debug("Known applications: %s", ", ".join(table))

    requested = [*config.extra_apps, *extra_apps]
    seed = detect_platform_libraries(table, requested)
    platform_libs = expand_transitively(seed, index)

    apps = build_app_list(config.app_name, table, platform_libs, index)

    artifacts = emit_release(
        apps,
        table,
        output_dir=config.output_dir,
        app_name=config.app_name,
        release_name=config.effective_release_name,
        release_version=config.effective_release_version,
        runtime_version=runtime_version,
        boot_compiler=boot_compiler,
    )

    logger.info(
        "Successfully generated release files for %s-%s",
        artifacts.release_name,
        artifacts.release_version,
    )
    return artifacts
