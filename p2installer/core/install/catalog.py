"""Catalog of every unit taking part in one installation"""

import logging
from collections import deque
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from p2installer.core.install.exceptions import InvalidRequestError, UnresolvedDependencyError
from p2installer.core.install.manifest import load_unit
from p2installer.core.install.models import (
    Requirement,
    RequirementKind,
    Unit,
    UnitKind,
    UnitOrigin,
    feature_key,
)
from p2installer.core.install.resolver import UnitIndex, UnitResolver

logger = logging.getLogger(__name__)

# Packages provided by the runtime itself; imports of these never become edges
DEFAULT_SYSTEM_PACKAGES = ("java.",)


class UnitCatalog:
    """Reactor units followed by the external units resolved for them.

    Built once per installation and read-only afterwards. Insertion order is
    significant: reactor units come first, then external units in the order
    they were resolved, which gives package lookups a deterministic
    reactor-before-external preference.
    """

    def __init__(self, system_packages: Sequence[str] = DEFAULT_SYSTEM_PACKAGES):
        self.index = UnitIndex()
        self.system_packages = tuple(system_packages)

    @classmethod
    def load(
        cls,
        plugins: Iterable[Path],
        features: Iterable[Path] = (),
        resolver: Optional[UnitResolver] = None,
        system_packages: Sequence[str] = DEFAULT_SYSTEM_PACKAGES,
    ) -> "UnitCatalog":
        """
        Load reactor artifacts and resolve everything they need

        Args:
            plugins: Reactor plugin artifacts (jars or bundle directories)
            features: Reactor feature artifacts
            resolver: Collaborator consulted for requirements the catalog
                cannot satisfy; None means nothing outside the reactor exists
            system_packages: Package name prefixes provided by the runtime

        Returns:
            Complete catalog

        Raises:
            ManifestError: If an artifact has no usable metadata
            InvalidRequestError: If artifacts are of the wrong kind or duplicated
            UnresolvedDependencyError: If a requirement has no provider
        """
        catalog = cls(system_packages)
        for kind, paths in ((UnitKind.PLUGIN, plugins), (UnitKind.FEATURE, features)):
            for path in paths:
                unit = load_unit(path, origin=UnitOrigin.REACTOR)
                if unit.kind != kind:
                    raise InvalidRequestError(
                        f"{path} is a {unit.kind.value}, but was passed as a {kind.value}"
                    )
                if not catalog.add(unit):
                    raise InvalidRequestError(f"Duplicate reactor unit: {unit.key} ({path})")
                logger.debug(f"Loaded reactor {unit.kind.value} {unit.id} {unit.version} from {path}")

        logger.info(f"Loaded {len(catalog)} reactor units")
        catalog.resolve_missing(resolver)
        return catalog

    def add(self, unit: Unit) -> bool:
        return self.index.add(unit)

    def get(self, key: str) -> Optional[Unit]:
        return self.index.get(key)

    def find(self, unit_id: str) -> Optional[Unit]:
        """Look a unit up by plugin key first, then by feature id"""
        return self.index.get(unit_id) or self.index.get(feature_key(unit_id))

    def exporters(self, package: str) -> List[Unit]:
        return self.index.exporters(package)

    def is_system_package(self, package: str) -> bool:
        return any(package == p.rstrip(".") or package.startswith(p) for p in self.system_packages)

    @property
    def reactor_units(self) -> List[Unit]:
        return [u for u in self.index if u.is_reactor]

    @property
    def external_units(self) -> List[Unit]:
        return [u for u in self.index if not u.is_reactor]

    def __getitem__(self, key: str) -> Unit:
        unit = self.index.get(key)
        if unit is None:
            raise KeyError(key)
        return unit

    def __contains__(self, key: object) -> bool:
        return key in self.index

    def __iter__(self) -> Iterator[Unit]:
        return iter(self.index)

    def __len__(self) -> int:
        return len(self.index)

    def is_satisfied(self, requirement: Requirement) -> bool:
        if requirement.kind == RequirementKind.BUNDLE:
            return requirement.name in self.index
        return bool(self.index.exporters(requirement.name))

    def missing_requirements(self, unit: Unit) -> List[Requirement]:
        """Requirements of a unit that no catalog unit satisfies yet"""
        missing = []
        for name in unit.requires:
            if name not in self.index:
                missing.append(Requirement(kind=RequirementKind.BUNDLE, name=name, requirer=unit.id))
        for package in unit.imports:
            if self.is_system_package(package) or package in unit.exports:
                continue
            if not self.index.exporters(package):
                missing.append(Requirement(kind=RequirementKind.PACKAGE, name=package, requirer=unit.id))
        return missing

    def resolve_missing(self, resolver: Optional[UnitResolver]) -> None:
        """Pull in external units until every requirement is satisfied

        External units are resolved transitively: their own requirements
        are looked up too.
        """
        pending = deque(self.index)
        while pending:
            unit = pending.popleft()
            for requirement in self.missing_requirements(unit):
                # An earlier resolution in this loop may already cover it
                if self.is_satisfied(requirement):
                    continue
                provider = resolver.resolve(requirement) if resolver is not None else None
                if provider is None:
                    raise UnresolvedDependencyError(requirement.name, unit.id)
                if provider.is_reactor:
                    provider = provider.as_external()
                if self.add(provider):
                    logger.info(
                        f"Resolved {requirement} for {unit.id}: "
                        f"{provider.id} {provider.version} ({provider.artifact_path})"
                    )
                    pending.append(provider)
                if not self.is_satisfied(requirement):
                    raise UnresolvedDependencyError(
                        requirement.name,
                        unit.id,
                        f"Unresolved dependency: {requirement} (required by {unit.id}); "
                        f"resolver returned {provider.key}, which does not provide it",
                    )
        logger.info(
            f"Catalog complete: {len(self.reactor_units)} reactor, "
            f"{len(self.external_units)} external units"
        )
