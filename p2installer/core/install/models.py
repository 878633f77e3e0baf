"""Data models for the installer"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# p2 names feature installable units "<id>.feature.group"; the catalog uses the
# same convention so a feature and a plugin may share an id.
FEATURE_KEY_SUFFIX = ".feature.group"


def feature_key(feature_id: str) -> str:
    """Catalog key of the feature with the given id"""
    return f"{feature_id}{FEATURE_KEY_SUFFIX}"


def validate_subpackage_name(name: str) -> str:
    """Subpackage names become a single directory under the dropin root"""
    if not name or not name.strip():
        raise ValueError("Subpackage name cannot be empty")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(f"Invalid subpackage name: {name!r}")
    return name


class UnitKind(str, Enum):
    """Kind of installable unit"""
    PLUGIN = "plugin"
    FEATURE = "feature"


class UnitShape(str, Enum):
    """On-disk shape of an installed unit"""
    ARCHIVE = "archive"
    DIRECTORY = "directory"


class UnitOrigin(str, Enum):
    """Where a unit comes from"""
    REACTOR = "reactor"
    EXTERNAL = "external"


class Unit(BaseModel):
    """A plugin or feature together with its dependency declarations.

    ``requires`` holds catalog keys: bundle symbolic names for plugins and
    ``<id>.feature.group`` for features.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Bundle symbolic name or feature id")
    version: str = Field(default="0.0.0", description="Unit version, never compared")
    kind: UnitKind = UnitKind.PLUGIN
    shape: UnitShape = UnitShape.ARCHIVE
    origin: UnitOrigin = UnitOrigin.REACTOR
    artifact_path: Optional[Path] = Field(default=None, description="Jar file or bundle directory")
    exports: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Unit ID cannot be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"Unit ID cannot contain path separators: {v!r}")
        return v

    @property
    def key(self) -> str:
        if self.kind == UnitKind.FEATURE:
            return feature_key(self.id)
        return self.id

    @property
    def is_reactor(self) -> bool:
        return self.origin == UnitOrigin.REACTOR

    @property
    def is_feature(self) -> bool:
        return self.kind == UnitKind.FEATURE

    @property
    def category(self) -> str:
        """Name of the directory the unit is installed into"""
        return "features" if self.is_feature else "plugins"

    @property
    def file_name(self) -> str:
        name = f"{self.id}_{self.version}"
        if self.shape == UnitShape.ARCHIVE:
            name += ".jar"
        return name

    def as_external(self) -> "Unit":
        return self.model_copy(update={"origin": UnitOrigin.EXTERNAL})


class RequirementKind(str, Enum):
    """Kind of dependency reference"""
    BUNDLE = "bundle"
    PACKAGE = "package"


class Requirement(BaseModel):
    """A single reference handed to the resolver"""
    model_config = ConfigDict(frozen=True)

    kind: RequirementKind
    name: str
    requirer: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind.value} {self.name}"


class InstallationRequest(BaseModel):
    """Installation request accepted from the front-end"""
    build_root: Path = Field(description="Root of the buildroot to install into")
    target_dropin_directory: Path = Field(default=Path("dropins"), description="Dropin directory, relative to build_root")
    main_package_id: str = Field(default="main", description="Subpackage receiving otherwise unplaced units")
    plugins: List[Path] = Field(default_factory=list, description="Reactor plugin artifacts")
    features: List[Path] = Field(default_factory=list, description="Reactor feature artifacts")
    package_mappings: Dict[str, str] = Field(default_factory=dict, description="Unit ID -> subpackage")

    @field_validator("main_package_id")
    @classmethod
    def validate_main_package(cls, v: str) -> str:
        return validate_subpackage_name(v)

    @field_validator("package_mappings")
    @classmethod
    def validate_mappings(cls, v: Dict[str, str]) -> Dict[str, str]:
        for subpackage in v.values():
            validate_subpackage_name(subpackage)
        return v

    @property
    def dropin_root(self) -> Path:
        return self.build_root / self.target_dropin_directory

    def add_plugin(self, path: Path) -> None:
        self.plugins.append(Path(path))

    def add_feature(self, path: Path) -> None:
        self.features.append(Path(path))

    def add_package_mapping(self, unit_id: str, subpackage: str) -> None:
        self.package_mappings[unit_id] = validate_subpackage_name(subpackage)


class Placement(str, Enum):
    """How a unit ended up in a subpackage"""
    COPY = "copy"
    LINK = "link"


class InstalledCapability(BaseModel):
    """A unit provided by a subpackage"""
    unit_id: str
    version: str
    kind: UnitKind
    subpackage: str
    placement: Placement
    path: Path


class InstallErrorCode(str, Enum):
    """Standardized error codes for installation failures"""
    UNRESOLVED_DEPENDENCY = "UNRESOLVED_DEPENDENCY"
    AMBIGUOUS_PLACEMENT = "AMBIGUOUS_PLACEMENT"
    IO_FAILURE = "IO_FAILURE"
    INVALID_MANIFEST = "INVALID_MANIFEST"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN = "UNKNOWN"


class InstallationResult(BaseModel):
    """Result of an installation run"""
    success: bool
    installed: List[InstalledCapability] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[InstallErrorCode] = None
    hint: Optional[str] = None
    conflict_unit: Optional[str] = None
    competing_subpackages: List[str] = Field(default_factory=list)
    missing_requirement: Optional[str] = None
    requirer: Optional[str] = None
    failed_unit: Optional[str] = None
    failed_path: Optional[str] = None
    duration_ms: int = 0

    def provided_in(self, subpackage: str) -> List[str]:
        """IDs of the units installed into a subpackage, in install order"""
        return [c.unit_id for c in self.installed if c.subpackage == subpackage]

    @property
    def subpackages(self) -> List[str]:
        return sorted({c.subpackage for c in self.installed})


class EntryKind(str, Enum):
    """Kind of entry found in a dropin tree"""
    PLUGIN = "plugin"
    FEATURE = "feature"
    SYMLINK = "symlink"


class TreeEntry(NamedTuple):
    """One unit found under <dropins>/<subpackage>/eclipse/<category>/"""
    subpackage: str
    category: str
    unit_id: str
    kind: EntryKind
