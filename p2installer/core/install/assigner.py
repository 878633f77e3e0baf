"""Subpackage assignment

Decides which subpackage every reactor unit is installed into, and which
subpackages need a placement of each external unit.

Rules, in order of precedence:
1. Explicit mappings from the request.
2. A unit required only by reactor units of a single subpackage follows
   them; requirers spanning several subpackages is a conflict.
3. Anything left goes to the main subpackage.
Reactor dependency cycles are collapsed and placed as one unit. External
units are placed next to every reactor unit that (transitively) requires
them, possibly in several subpackages.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from p2installer.core.install.exceptions import AmbiguousPlacementError, InvalidRequestError
from p2installer.core.install.graph import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class SubpackageAssignment:
    """Final unit -> subpackage decision

    Reactor units have exactly one subpackage; external units have one
    entry per subpackage that needs them.
    """
    reactor: Dict[str, str] = field(default_factory=dict)
    external: Dict[str, List[str]] = field(default_factory=dict)

    def add_external(self, key: str, subpackage: str) -> bool:
        subpackages = self.external.setdefault(key, [])
        if subpackage in subpackages:
            return False
        subpackages.append(subpackage)
        return True

    def subpackage_of(self, key: str) -> Optional[str]:
        """Subpackage of a reactor unit"""
        return self.reactor.get(key)

    def subpackages_of(self, key: str) -> List[str]:
        if key in self.reactor:
            return [self.reactor[key]]
        return list(self.external.get(key, []))

    def placements(self) -> Iterator[Tuple[str, str]]:
        """(unit key, subpackage) pairs, reactor units first"""
        for key, subpackage in self.reactor.items():
            yield key, subpackage
        for key, subpackages in self.external.items():
            for subpackage in subpackages:
                yield key, subpackage

    def units_in(self, subpackage: str) -> List[str]:
        return [key for key, sub in self.placements() if sub == subpackage]

    @property
    def subpackages(self) -> List[str]:
        return sorted({sub for _, sub in self.placements()})


class PackageAssigner:
    """Fixed-point propagation of subpackage decisions along dependency edges"""

    def __init__(self, graph: DependencyGraph):
        self.graph = graph
        self.catalog = graph.catalog

    def _explicit_keys(self, explicit_mappings: Dict[str, str]) -> Dict[str, str]:
        """Translate unit IDs of the request into catalog keys"""
        mapped = {}
        for unit_id, subpackage in explicit_mappings.items():
            unit = self.catalog.find(unit_id)
            if unit is None:
                raise InvalidRequestError(f"Package mapping refers to unknown unit: {unit_id}")
            if not unit.is_reactor:
                raise InvalidRequestError(
                    f"Package mapping refers to {unit_id}, which is not built in this reactor"
                )
            mapped[unit.key] = subpackage
        return mapped

    def _component_name(self, members: Iterable[str]) -> str:
        return ", ".join(sorted(self.graph.unit(key).id for key in members))

    def assign(self, explicit_mappings: Dict[str, str], main_package: str) -> SubpackageAssignment:
        """
        Compute the assignment

        Args:
            explicit_mappings: Reactor unit ID -> subpackage, from the user
            main_package: Subpackage for units nothing else decides

        Returns:
            Complete assignment

        Raises:
            InvalidRequestError: If a mapping names an unknown or external unit
            AmbiguousPlacementError: If a unit would need several subpackages
        """
        explicit = self._explicit_keys(explicit_mappings)
        condensed = self.graph.reactor_condensation()
        component_of = condensed.graph["mapping"]
        settled: Dict[int, str] = {}

        # Seed with explicit mappings; a cycle mapped to two places is a conflict
        for node, data in condensed.nodes(data=True):
            choices = {explicit[key] for key in data["members"] if key in explicit}
            if len(choices) > 1:
                raise AmbiguousPlacementError(self._component_name(data["members"]), choices)
            if choices:
                settled[node] = choices.pop()

        # Requirers come before what they require in topological order
        order = list(nx.topological_sort(condensed))
        passes = 0
        changed = True
        while changed:
            changed = False
            passes += 1
            for node in order:
                if node in settled:
                    continue
                choices = {settled[p] for p in condensed.predecessors(node) if p in settled}
                if len(choices) > 1:
                    raise AmbiguousPlacementError(
                        self._component_name(condensed.nodes[node]["members"]), choices
                    )
                if choices:
                    settled[node] = choices.pop()
                    changed = True
        logger.debug(f"Propagation reached a fixed point after {passes} passes")

        assignment = SubpackageAssignment()
        for unit in self.catalog.reactor_units:
            subpackage = settled.get(component_of[unit.key], main_package)
            assignment.reactor[unit.key] = subpackage
            logger.debug(f"{unit.id} -> {subpackage}")

        for unit in self.catalog.reactor_units:
            self._place_externals(unit.key, assignment.reactor[unit.key], assignment)

        logger.info(
            f"Assigned {len(assignment.reactor)} reactor units and "
            f"{len(assignment.external)} external units to {len(assignment.subpackages)} subpackages"
        )
        return assignment

    def _place_externals(self, key: str, subpackage: str, assignment: SubpackageAssignment) -> None:
        """Record every external unit reachable from a reactor unit through external units"""
        queue = deque(self.graph.requirements(key))
        seen = set()
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            unit = self.graph.unit(current)
            if unit.is_reactor:
                continue
            if assignment.add_external(current, subpackage):
                logger.debug(f"{unit.id} needed in {subpackage} (via {key})")
            queue.extend(self.graph.requirements(current))
