from pathlib import Path
from dataclasses import dataclass

START_BOOT = "start.boot"
SYS_CONFIG = "sys.config"
LAUNCHER = "run"


@dataclass(frozen=True)
class BundleLayout:
    root: Path
    release_name: str
    release_version: str

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def launcher(self) -> Path:
        return self.bin_dir / LAUNCHER

    @property
    def releases_dir(self) -> Path:
        return self.root / "releases"

    @property
    def release_file(self) -> Path:
        return self.releases_dir / f"{self.release_name}.rel"

    @property
    def version_dir(self) -> Path:
        return self.releases_dir / self.release_version

    @property
    def start_boot(self) -> Path:
        return self.version_dir / START_BOOT

    @property
    def version_release_file(self) -> Path:
        return self.version_dir / f"{self.release_name}.rel"

    @property
    def version_script_file(self) -> Path:
        return self.version_dir / f"{self.release_name}.script"

    @property
    def version_sys_config(self) -> Path:
        return self.version_dir / SYS_CONFIG

    @property
    def root_sys_config(self) -> Path:
        return self.root / SYS_CONFIG

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    def app_dir(self, name: str, version: str) -> Path:
        return self.lib_dir / f"{name}-{version}"

    def ebin_dir(self, name: str, version: str) -> Path:
        return self.app_dir(name, version) / "ebin"

    def priv_dir(self, name: str, version: str) -> Path:
        return self.app_dir(name, version) / "priv"

    def all_dirs(self) -> list[Path]:
        return [
            self.root,
            self.bin_dir,
            self.releases_dir,
            self.version_dir,
            self.lib_dir,
        ]
