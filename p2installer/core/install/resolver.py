"""Resolvers for units that are not part of the reactor

The installer only needs an opaque lookup: given a required bundle or an
imported package, return the unit that provides it (with its artifact
location), or None.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from p2installer.core.install.exceptions import ManifestError
from p2installer.core.install.manifest import FEATURE_XML, MANIFEST_PATH, load_unit
from p2installer.core.install.models import Requirement, RequirementKind, Unit, UnitOrigin

logger = logging.getLogger(__name__)


class UnitIndex:
    """Units by catalog key and by exported package, in insertion order"""

    def __init__(self, units: Iterable[Unit] = ()):
        self._units: Dict[str, Unit] = {}
        self._exporters: Dict[str, List[str]] = {}
        for unit in units:
            self.add(unit)

    def add(self, unit: Unit) -> bool:
        """Add a unit; returns False if its key is already present"""
        if unit.key in self._units:
            return False
        self._units[unit.key] = unit
        for package in unit.exports:
            self._exporters.setdefault(package, []).append(unit.key)
        return True

    def get(self, key: str) -> Optional[Unit]:
        return self._units.get(key)

    def exporters(self, package: str) -> List[Unit]:
        return [self._units[key] for key in self._exporters.get(package, [])]

    def __contains__(self, key: object) -> bool:
        return key in self._units

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)


class UnitResolver(ABC):
    """Resolver collaborator consulted for requirements the reactor cannot satisfy"""

    @abstractmethod
    def resolve(self, requirement: Requirement) -> Optional[Unit]:
        """
        Find the unit satisfying a requirement

        Args:
            requirement: Required bundle (catalog key) or imported package

        Returns:
            External unit with its artifact location, or None if not found
        """


class StaticResolver(UnitResolver):
    """Resolver over a fixed set of units"""

    def __init__(self, units: Iterable[Unit] = ()):
        self.index = UnitIndex(unit.as_external() for unit in units)

    def resolve(self, requirement: Requirement) -> Optional[Unit]:
        if requirement.kind == RequirementKind.BUNDLE:
            return self.index.get(requirement.name)
        providers = self.index.exporters(requirement.name)
        if len(providers) > 1:
            logger.warning(
                f"Package {requirement.name} is exported by several units "
                f"({', '.join(u.id for u in providers)}), using {providers[0].id}"
            )
        return providers[0] if providers else None


class RepositoryResolver(StaticResolver):
    """Resolver over directories of jars and directory-shaped bundles

    Directories are scanned once, lazily, in sorted path order; the first
    unit found for a given key wins.
    """

    def __init__(self, directories: Sequence[Path]):
        super().__init__()
        self.directories = [Path(d) for d in directories]
        self._scanned = False

    def _index_artifact(self, path: Path) -> None:
        try:
            unit = load_unit(path, origin=UnitOrigin.EXTERNAL)
        except ManifestError as e:
            logger.warning(f"Skipping unreadable artifact {path}: {e}")
            return
        if self.index.add(unit):
            logger.debug(f"Indexed {unit.key} {unit.version} from {path}")
        else:
            logger.debug(f"Ignoring duplicate {unit.key} at {path}")

    def scan(self) -> None:
        """Index every unit found under the repository directories"""
        for directory in self.directories:
            if not directory.is_dir():
                logger.warning(f"Repository directory not found: {directory}")
                continue
            for dirpath, dirnames, filenames in os.walk(directory):
                current = Path(dirpath)
                dirnames.sort()
                for name in list(dirnames):
                    candidate = current / name
                    if (candidate / MANIFEST_PATH).is_file() or (candidate / FEATURE_XML).is_file():
                        self._index_artifact(candidate)
                        dirnames.remove(name)
                for name in sorted(filenames):
                    if name.endswith(".jar"):
                        self._index_artifact(current / name)
        self._scanned = True
        logger.info(f"Indexed {len(self.index)} external units from {len(self.directories)} repositories")

    def resolve(self, requirement: Requirement) -> Optional[Unit]:
        if not self._scanned:
            self.scan()
        return super().resolve(requirement)
