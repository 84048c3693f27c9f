import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from relwrap.analyze.graph import Component
from relwrap.bundle.launcher import write_launcher
from relwrap.bundle.layout import BundleLayout
from relwrap.errors import BuildError, RelwrapError
from relwrap.release.emitter import ReleaseArtifacts, read_manifest
from relwrap.utils.fs import copy_contents, copy_entry, copy_file, ensure_dir, remove_dir

logger = logging.getLogger(__name__)


def assemble_bundle(
    *,
    artifacts: ReleaseArtifacts,
    components: Iterable[Component],
    output_dir: Path,
    sys_config: Optional[Path] = None,
) -> BundleLayout:

    try:
        remove_dir(output_dir)

        layout = BundleLayout(
            output_dir,
            release_name=artifacts.release_name,
            release_version=artifacts.release_version,
        )

        for directory in layout.all_dirs():
            ensure_dir(directory)

        write_launcher(
            layout.launcher,
            release_name=artifacts.release_name,
            release_version=artifacts.release_version,
            app_name=artifacts.app_name,
        )
        _assemble_release_files(artifacts, layout)

        if sys_config is not None:
            _assemble_sys_config(sys_config, layout)

        versions = read_manifest(artifacts.manifest_file)
        copied = _assemble_libraries(components, versions, layout)

        logger.info(
            "Bundle created at %s with %d applications", output_dir, len(copied)
        )
        return layout

    except (RelwrapError, OSError) as exc:
        raise BuildError(
            f"Failed to assemble bundle: {exc}"
        ) from exc


def _assemble_release_files(
    artifacts: ReleaseArtifacts,
    layout: BundleLayout,
) -> None:
    copy_file(artifacts.rel_file, layout.release_file)
    copy_file(artifacts.boot_file, layout.start_boot)
    copy_file(artifacts.script_file, layout.version_script_file)
    copy_file(artifacts.rel_file, layout.version_release_file)


def _assemble_sys_config(
    sys_config: Path,
    layout: BundleLayout,
) -> None:
    if not sys_config.is_file():
        raise BuildError(f"sys.config not found: {sys_config}")

    logger.info("Copying sys.config to release")
    copy_file(sys_config, layout.version_sys_config)
    copy_file(sys_config, layout.root_sys_config)


def _assemble_libraries(
    components: Iterable[Component],
    versions: Dict[str, str],
    layout: BundleLayout,
) -> List[str]:
    copied: List[str] = []

    for component in sorted(components, key=lambda c: c.name):
        version = versions.get(component.name)
        if version is None:
            logger.debug("%s is not part of the release; skipping", component.name)
            continue

        ebin_dir = layout.ebin_dir(component.name, version)
        ensure_dir(ebin_dir)

        for source in component.files:
            if not source.exists():
                raise BuildError(f"Module file not found for {component.name}: {source}")
            if source.is_dir():
                copy_contents(source, ebin_dir)
            else:
                copy_file(source, ebin_dir / source.name)

        if component.resources:
            priv_dir = layout.priv_dir(component.name, version)
            for source in component.resources:
                if not source.exists():
                    raise BuildError(f"Resource not found for {component.name}: {source}")
                copy_entry(source, priv_dir)

        logger.info("  Copied %s-%s", component.name, version)
        copied.append(component.name)

    return copied
