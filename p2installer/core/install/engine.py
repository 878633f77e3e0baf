"""
Eclipse Installer - installs reactor plugins and features into dropin subpackages

Runs one installation request end to end:
1. Catalog: read reactor metadata, resolve external units
2. Graph: link units through Require-Bundle, Import-Package and feature includes
3. Assignment: decide the subpackage of every unit
4. Materialization: copy or symlink units into the dropin tree

Nothing is written before steps 1-3 succeed. Failures are returned as a
failed InstallationResult carrying an error code and the context needed to
diagnose them; nothing is retried.
"""

import logging
import time
from typing import Optional, Sequence

from p2installer.core.install.assigner import PackageAssigner
from p2installer.core.install.catalog import DEFAULT_SYSTEM_PACKAGES, UnitCatalog
from p2installer.core.install.exceptions import (
    AmbiguousPlacementError,
    InstallerError,
    InvalidRequestError,
    ManifestError,
    MaterializationError,
    UnresolvedDependencyError,
)
from p2installer.core.install.graph import DependencyGraph
from p2installer.core.install.materializer import TreeMaterializer
from p2installer.core.install.models import (
    InstallErrorCode,
    InstallationRequest,
    InstallationResult,
)
from p2installer.core.install.resolver import UnitResolver

logger = logging.getLogger(__name__)


class EclipseInstaller:
    """Installer service invoked by the front-end"""

    def __init__(
        self,
        resolver: Optional[UnitResolver] = None,
        system_packages: Sequence[str] = DEFAULT_SYSTEM_PACKAGES,
    ):
        """
        Initialize installer

        Args:
            resolver: Collaborator for units outside the reactor
            system_packages: Package prefixes provided by the runtime
        """
        self.resolver = resolver
        self.system_packages = tuple(system_packages)

    def perform_installation(self, request: InstallationRequest) -> InstallationResult:
        """
        Perform installation of Eclipse artifacts

        Args:
            request: Installation parameters

        Returns:
            Result listing installed capabilities, or the failure
        """
        started = time.monotonic()
        logger.info(
            f"Starting installation: {len(request.plugins)} plugins, "
            f"{len(request.features)} features -> {request.dropin_root}"
        )

        try:
            catalog = UnitCatalog.load(
                request.plugins,
                request.features,
                resolver=self.resolver,
                system_packages=self.system_packages,
            )
            graph = DependencyGraph.build(catalog)
            assignment = PackageAssigner(graph).assign(
                request.package_mappings, request.main_package_id
            )
            materializer = TreeMaterializer(request.build_root, request.target_dropin_directory)
            installed = materializer.materialize(assignment, catalog)
        except InstallerError as e:
            result = self._failure(e)
            result.duration_ms = int((time.monotonic() - started) * 1000)
            logger.error(f"Installation failed [{result.error_code.value}]: {e}")
            return result

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Installation completed: {len(installed)} units in {duration_ms}ms")
        return InstallationResult(success=True, installed=installed, duration_ms=duration_ms)

    @staticmethod
    def _failure(error: InstallerError) -> InstallationResult:
        """Translate an installer error into a failed result"""
        result = InstallationResult(success=False, error=str(error), error_code=InstallErrorCode.UNKNOWN)

        if isinstance(error, AmbiguousPlacementError):
            result.error_code = InstallErrorCode.AMBIGUOUS_PLACEMENT
            result.conflict_unit = error.unit_id
            result.competing_subpackages = list(error.subpackages)
            result.hint = f"Add an explicit package mapping for {error.unit_id}"
        elif isinstance(error, UnresolvedDependencyError):
            result.error_code = InstallErrorCode.UNRESOLVED_DEPENDENCY
            result.missing_requirement = error.requirement
            result.requirer = error.requirer
            result.hint = "Make the providing unit available to the resolver or add it to the reactor"
        elif isinstance(error, MaterializationError):
            result.error_code = InstallErrorCode.IO_FAILURE
            result.failed_unit = error.unit_id
            result.failed_path = error.path
            result.hint = "Clean the destination directory before retrying"
        elif isinstance(error, ManifestError):
            result.error_code = InstallErrorCode.INVALID_MANIFEST
        elif isinstance(error, InvalidRequestError):
            result.error_code = InstallErrorCode.INVALID_REQUEST

        return result
