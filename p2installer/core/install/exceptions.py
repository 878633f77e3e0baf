"""Exception classes for the installer"""

from typing import Iterable, Optional


class InstallerError(Exception):
    """Base exception for all installer errors"""
    pass


class ManifestError(InstallerError):
    """Raised when unit metadata cannot be read or is invalid"""
    pass


class InvalidRequestError(InstallerError):
    """Raised when an installation request is inconsistent with its reactor"""
    pass


class UnresolvedDependencyError(InstallerError):
    """Raised when a requirement has no provider, even after asking the resolver"""

    def __init__(self, requirement: str, requirer: str, message: Optional[str] = None):
        super().__init__(
            message or f"Unresolved dependency: {requirement} (required by {requirer})"
        )
        self.requirement = requirement
        self.requirer = requirer


class UnknownRequiredBundleError(UnresolvedDependencyError):
    """Raised when a required-bundle reference matches no unit in the catalog"""

    def __init__(self, requirement: str, requirer: str):
        super().__init__(
            requirement,
            requirer,
            f"Unknown required bundle: {requirement} (required by {requirer})",
        )


class AmbiguousPlacementError(InstallerError):
    """Raised when a unit would have to be installed into several subpackages"""

    def __init__(self, unit_id: str, subpackages: Iterable[str]):
        self.unit_id = unit_id
        self.subpackages = sorted(set(subpackages))
        super().__init__(
            f"Cannot decide subpackage for {unit_id}: "
            f"candidates are {', '.join(self.subpackages)}"
        )


class MaterializationError(InstallerError):
    """Raised when writing the dropin tree fails"""

    def __init__(self, message: str, unit_id: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.unit_id = unit_id
        self.path = path


class TreeLayoutError(InstallerError):
    """Raised when a dropin tree does not have the expected shape"""
    pass


class ConfigError(InstallerError):
    """Raised when installer settings cannot be loaded"""
    pass
