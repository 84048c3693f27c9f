from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from relwrap.analyze.graph import Component
from relwrap.errors import ConfigError, InputError


def _validate_name(value: str, what: str) -> str:
    if not value:
        raise ConfigError(f"{what} cannot be empty")
    if "/" in value or "\\" in value:
        raise ConfigError(f"{what} must not contain path separators")
    return value


class ReleaseConfig(BaseModel):
    app_name: str = Field(
        ...,
        description="Name of the main application",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Version of the main application, used when its .app file has none",
    )

    output_dir: Path = Field(
        ...,
        description="Directory that receives the release files",
    )

    release_name: Optional[str] = Field(
        default=None,
        description="Name of the release (defaults to the application name)",
    )

    release_version: Optional[str] = Field(
        default=None,
        description="Version of the release (defaults to the application version)",
    )

    extra_apps: List[str] = Field(
        default_factory=list,
        description="Platform applications to include even if nothing declares them",
        examples=[["crypto", "ssl"]],
    )

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, value: str) -> str:
        return _validate_name(value, "Application name")

    @field_validator("app_version")
    @classmethod
    def validate_app_version(cls, value: str) -> str:
        if not value:
            raise ConfigError("Application version cannot be empty")
        return value

    @field_validator("release_name")
    @classmethod
    def validate_release_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _validate_name(value, "Release name")

    @field_validator("release_version")
    @classmethod
    def validate_release_version(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _validate_name(value, "Release version")

    @property
    def effective_release_name(self) -> str:
        return self.release_name or self.app_name

    @property
    def effective_release_version(self) -> str:
        return self.release_version or self.app_version

    class Config:
        frozen = True


class BundleConfig(BaseModel):
    release_dir: Path = Field(
        ...,
        description="Directory containing the generated .rel/.script/.boot/.manifest files",
    )

    release_name: str = Field(
        ...,
        description="Name of the release to bundle",
    )

    output_dir: Path = Field(
        ...,
        description="Directory the bundle is written to (replaced if present)",
    )

    sys_config: Optional[Path] = Field(
        default=None,
        description="Optional sys.config copied into the bundle",
    )

    @field_validator("release_dir")
    @classmethod
    def validate_release_dir(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ConfigError(f"Release directory does not exist: {value}")
        return value

    @field_validator("release_name")
    @classmethod
    def validate_release_name(cls, value: str) -> str:
        return _validate_name(value, "Release name")

    @field_validator("sys_config")
    @classmethod
    def validate_sys_config(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_file():
            raise ConfigError(f"sys.config file does not exist: {value}")
        return value

    class Config:
        frozen = True


class ComponentSpec(BaseModel):
    name: str
    version: Optional[str] = None
    files: List[Path] = Field(
        default_factory=list,
        description="Compiled module files or directories, including the .app file",
    )
    resources: List[Path] = Field(
        default_factory=list,
        description="Files or directories copied into priv/",
    )
    deps: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _validate_name(value, "Component name")


class BuildGraph(BaseModel):
    main: str
    components: List[ComponentSpec]

    @model_validator(mode="after")
    def validate_references(self) -> "BuildGraph":
        names = [spec.name for spec in self.components]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise InputError(
                f"Duplicate components in build graph: {', '.join(duplicates)}"
            )

        if self.main not in names:
            raise InputError(f"Main component {self.main!r} is not in the build graph")

        known = set(names)
        for spec in self.components:
            missing = [dep for dep in spec.deps if dep not in known]
            if missing:
                raise InputError(
                    f"Component {spec.name!r} depends on unknown components: "
                    + ", ".join(missing)
                )
        return self

    @classmethod
    def from_file(cls, path: Path) -> "BuildGraph":
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InputError(f"Failed to read build graph: {path}") from exc
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise InputError(f"Invalid build graph {path}: {exc}") from exc

    def to_components(self) -> Dict[str, Component]:
        specs = {spec.name: spec for spec in self.components}
        built: Dict[str, Component] = {}
        in_progress: List[str] = []

        def build(name: str) -> Component:
            if name in built:
                return built[name]
            if name in in_progress:
                cycle = " -> ".join(in_progress[in_progress.index(name):] + [name])
                raise InputError(f"Dependency cycle in build graph: {cycle}")

            in_progress.append(name)
            spec = specs[name]
            component = Component(
                name=spec.name,
                files=tuple(spec.files),
                resources=tuple(spec.resources),
                dependencies=tuple(build(dep) for dep in spec.deps),
                version=spec.version,
            )
            in_progress.pop()
            built[name] = component
            return component

        for spec in self.components:
            build(spec.name)
        return built

    def main_component(self) -> Component:
        return self.to_components()[self.main]
