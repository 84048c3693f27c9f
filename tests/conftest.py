from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from relwrap.errors import EnvironmentError
from relwrap.release.boot import BootOk, BootRequest, BootResult
from relwrap.runtime.index import StaticLibraryIndex


def write_app_file(
    app_dir: Path,
    name: str,
    version: Optional[str] = None,
    *,
    deps: Iterable[str] = ("kernel", "stdlib"),
    included: Iterable[str] = (),
    nested: bool = True,
) -> Path:
    ebin = app_dir / "ebin" if nested else app_dir
    ebin.mkdir(parents=True, exist_ok=True)

    props = [f"{{applications, [{', '.join(deps)}]}}"]
    if included:
        props.append(f"{{included_applications, [{', '.join(included)}]}}")
    if version is not None:
        props.insert(0, f'{{vsn, "{version}"}}')
    props.insert(0, f'{{description, "{name} application"}}')

    app_file = ebin / f"{name}.app"
    app_file.write_text(
        f"{{application, {name},\n [" + ",\n  ".join(props) + "]}.\n"
    )
    return app_file


class FakeBootCompiler:
    def __init__(self, result: BootResult = BootOk(), write_outputs: bool = True) -> None:
        self.result = result
        self.write_outputs = write_outputs
        self.requests: List[BootRequest] = []
        self.available = True
        self.checks = 0

    def ensure_available(self) -> None:
        self.checks += 1
        if not self.available:
            raise EnvironmentError("SASL application not found. Cannot load systools module.")

    def compile(self, request: BootRequest) -> BootResult:
        self.requests.append(request)
        if self.write_outputs and not hasattr(self.result, "reason"):
            base = request.rel_base
            base.with_name(base.name + ".script").write_text("{script, fake}.\n")
            base.with_name(base.name + ".boot").write_bytes(b"\x83boot")
        return self.result


@pytest.fixture
def platform_root(tmp_path: Path) -> Path:
    root = tmp_path / "otp" / "lib"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def install_platform_app(platform_root: Path):
    installed: Dict[str, Path] = {}

    def install(name: str, version: str, deps: Iterable[str] = ("kernel", "stdlib")) -> Path:
        app_file = write_app_file(platform_root / f"{name}-{version}", name, version, deps=deps)
        installed[name] = app_file
        return app_file

    install.installed = installed
    return install


@pytest.fixture
def static_index(install_platform_app) -> StaticLibraryIndex:
    install_platform_app("kernel", "9.2")
    install_platform_app("stdlib", "5.2", deps=("kernel",))
    return StaticLibraryIndex(install_platform_app.installed)


@pytest.fixture
def fake_compiler() -> FakeBootCompiler:
    return FakeBootCompiler()
