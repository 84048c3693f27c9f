import shutil
from pathlib import Path

from relwrap.errors import RelwrapError


class FilesystemError(RelwrapError):
    exit_code = 12

def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create directory: {path}"
        ) from exc


def remove_dir(path: Path) -> None:
    try:
        if path.exists():
            shutil.rmtree(path)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove directory: {path}"
        ) from exc


def copy_file(source: Path, destination: Path) -> None:
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination}"
        ) from exc


def copy_contents(source: Path, destination: Path) -> None:
    """Copy a directory's children into ``destination`` (``cp -r src/* dst/``)."""
    ensure_dir(destination)
    try:
        for child in sorted(source.iterdir()):
            if child.is_dir():
                shutil.copytree(child, destination / child.name, dirs_exist_ok=True)
            else:
                shutil.copy2(child, destination / child.name)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy contents of {source} to {destination}"
        ) from exc


def copy_entry(source: Path, destination_dir: Path) -> None:
    """Copy a file or a whole directory tree into ``destination_dir``."""
    ensure_dir(destination_dir)
    try:
        if source.is_dir():
            shutil.copytree(
                source,
                destination_dir / source.name,
                dirs_exist_ok=True,
            )
        else:
            shutil.copy2(source, destination_dir / source.name)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} into {destination_dir}"
        ) from exc
