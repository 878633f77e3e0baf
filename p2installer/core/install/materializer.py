"""Writes the dropin tree for a computed assignment"""

import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Set, Tuple, Union

from p2installer.core.install.assigner import SubpackageAssignment
from p2installer.core.install.catalog import UnitCatalog
from p2installer.core.install.exceptions import MaterializationError
from p2installer.core.install.models import (
    InstalledCapability,
    Placement,
    Unit,
    UnitShape,
)

logger = logging.getLogger(__name__)


class TreeMaterializer:
    """Materializer for <root>/<dropins>/<subpackage>/eclipse/{plugins,features}/

    Reactor units, features and directory-shaped units are copied; external
    archive-shaped plugins are symlinked to their artifact. Nothing that
    already exists is overwritten and nothing is rolled back on failure.
    """

    def __init__(self, destination_root: Path, dropin_directory: Union[str, Path] = "dropins"):
        """
        Initialize materializer

        Args:
            destination_root: Build root the tree is written under
            dropin_directory: Dropin directory, relative to destination_root
        """
        self.dropin_root = Path(destination_root) / dropin_directory
        self._created: Set[Tuple[str, str]] = set()

    def category_dir(self, subpackage: str, category: str) -> Path:
        """Directory for a (subpackage, category) pair, created on first use"""
        path = self.dropin_root / subpackage / "eclipse" / category
        if (subpackage, category) not in self._created:
            path.mkdir(parents=True, exist_ok=True)
            self._created.add((subpackage, category))
        return path

    def target_path(self, unit: Unit, subpackage: str) -> Path:
        return self.dropin_root / subpackage / "eclipse" / unit.category / unit.file_name

    @staticmethod
    def placement_for(unit: Unit) -> Placement:
        if unit.is_reactor or unit.is_feature or unit.shape == UnitShape.DIRECTORY:
            return Placement.COPY
        return Placement.LINK

    def materialize(self, assignment: SubpackageAssignment, catalog: UnitCatalog) -> List[InstalledCapability]:
        """
        Place every (unit, subpackage) pair of an assignment

        Args:
            assignment: Output of PackageAssigner
            catalog: Catalog holding artifact locations

        Returns:
            Installed capabilities, in placement order

        Raises:
            MaterializationError: On the first failure; earlier placements stay
        """
        installed = []
        for key, subpackage in assignment.placements():
            installed.append(self.place(catalog[key], subpackage))
        logger.info(f"Materialized {len(installed)} units under {self.dropin_root}")
        return installed

    def place(self, unit: Unit, subpackage: str) -> InstalledCapability:
        """Copy or link one unit into one subpackage"""
        if unit.artifact_path is None:
            raise MaterializationError(f"No artifact location known for {unit.id}", unit_id=unit.id)

        target = self.target_path(unit, subpackage)
        placement = self.placement_for(unit)
        try:
            self.category_dir(subpackage, unit.category)
            if target.exists() or target.is_symlink():
                raise MaterializationError(
                    f"Refusing to overwrite existing {target}; clean the destination first",
                    unit_id=unit.id,
                    path=str(target),
                )
            if placement == Placement.LINK:
                target.symlink_to(unit.artifact_path.absolute())
            else:
                self._copy(unit, target)
        except OSError as e:
            raise MaterializationError(
                f"Failed to install {unit.id} into {subpackage}: {e}",
                unit_id=unit.id,
                path=str(target),
            ) from e

        logger.info(f"{placement.value:<4} {unit.id} {unit.version} -> {subpackage}")
        return InstalledCapability(
            unit_id=unit.id,
            version=unit.version,
            kind=unit.kind,
            subpackage=subpackage,
            placement=placement,
            path=target,
        )

    def _copy(self, unit: Unit, target: Path) -> None:
        source = unit.artifact_path
        if source.is_dir():
            shutil.copytree(source, target, symlinks=True)
        elif unit.shape == UnitShape.DIRECTORY:
            self.extract_jar(source, target)
        else:
            shutil.copyfile(source, target)

    @staticmethod
    def extract_jar(jar_path: Path, target_dir: Path) -> None:
        """
        Unpack a jar into a directory with path traversal protection

        Raises:
            MaterializationError: If the jar is invalid or would escape target_dir
        """
        logger.debug(f"Extracting {jar_path.name} to {target_dir}")
        target_dir.mkdir(parents=True)
        try:
            with zipfile.ZipFile(jar_path, "r") as zf:
                for member in zf.namelist():
                    member_path = PurePosixPath(member)
                    if member_path.is_absolute() or ".." in member_path.parts:
                        raise MaterializationError(
                            f"Path traversal detected in {jar_path}: {member}",
                            path=str(target_dir),
                        )
                    destination = target_dir.joinpath(*member_path.parts)
                    if member.endswith("/"):
                        destination.mkdir(parents=True, exist_ok=True)
                        continue
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(member) as source, open(destination, "wb") as out:
                        shutil.copyfileobj(source, out)
        except zipfile.BadZipFile as e:
            raise MaterializationError(f"Failed to extract {jar_path}: {e}", path=str(target_dir))
