"""Eclipse dropin installer

Installs locally built OSGi plugins and features into a dropin tree split
into subpackages, symlinking the external bundles they depend on.

Components:
- manifest: MANIFEST.MF and feature.xml reader
- resolver: Lookup of units outside the reactor
- catalog: Reactor and external units of one installation
- graph: Dependency graph between units
- assigner: Subpackage assignment
- materializer: Dropin tree writer
- tree: Dropin tree report
- engine: Installation front door
- models: Pydantic data models
- exceptions: Custom exceptions
"""

from p2installer.core.install.exceptions import (
    InstallerError,
    ManifestError,
    InvalidRequestError,
    UnresolvedDependencyError,
    UnknownRequiredBundleError,
    AmbiguousPlacementError,
    MaterializationError,
    TreeLayoutError,
    ConfigError,
)
from p2installer.core.install.models import (
    Unit,
    UnitKind,
    UnitShape,
    UnitOrigin,
    Requirement,
    RequirementKind,
    InstallationRequest,
    InstallationResult,
    InstalledCapability,
    InstallErrorCode,
    Placement,
    EntryKind,
    TreeEntry,
    feature_key,
)
from p2installer.core.install.manifest import load_unit, parse_manifest, parse_header
from p2installer.core.install.resolver import (
    UnitIndex,
    UnitResolver,
    StaticResolver,
    RepositoryResolver,
)
from p2installer.core.install.catalog import UnitCatalog
from p2installer.core.install.graph import DependencyGraph
from p2installer.core.install.assigner import PackageAssigner, SubpackageAssignment
from p2installer.core.install.materializer import TreeMaterializer
from p2installer.core.install.tree import scan_dropins
from p2installer.core.install.engine import EclipseInstaller

__all__ = [
    # Exceptions
    "InstallerError",
    "ManifestError",
    "InvalidRequestError",
    "UnresolvedDependencyError",
    "UnknownRequiredBundleError",
    "AmbiguousPlacementError",
    "MaterializationError",
    "TreeLayoutError",
    "ConfigError",
    # Models
    "Unit",
    "UnitKind",
    "UnitShape",
    "UnitOrigin",
    "Requirement",
    "RequirementKind",
    "InstallationRequest",
    "InstallationResult",
    "InstalledCapability",
    "InstallErrorCode",
    "Placement",
    "EntryKind",
    "TreeEntry",
    "feature_key",
    # Metadata
    "load_unit",
    "parse_manifest",
    "parse_header",
    # Components
    "UnitIndex",
    "UnitResolver",
    "StaticResolver",
    "RepositoryResolver",
    "UnitCatalog",
    "DependencyGraph",
    "PackageAssigner",
    "SubpackageAssignment",
    "TreeMaterializer",
    "scan_dropins",
    # Engine
    "EclipseInstaller",
]
