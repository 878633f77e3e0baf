"""Dependency graph between catalog units"""

import logging
from typing import List

import networkx as nx

from p2installer.core.install.catalog import UnitCatalog
from p2installer.core.install.exceptions import (
    UnknownRequiredBundleError,
    UnresolvedDependencyError,
)
from p2installer.core.install.models import Unit

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed graph over catalog keys; an edge A -> B means A requires B.

    Cycles are allowed, self-loops are never added.
    """

    def __init__(self, catalog: UnitCatalog):
        self.catalog = catalog
        self.graph = nx.DiGraph()

    @classmethod
    def build(cls, catalog: UnitCatalog) -> "DependencyGraph":
        """
        Build the graph from catalog content

        Required bundles resolve to the unit with that exact key. Imported
        packages resolve to the first exporter in catalog order, which puts
        reactor exporters ahead of external ones.

        Args:
            catalog: Fully resolved catalog

        Returns:
            Dependency graph

        Raises:
            UnknownRequiredBundleError: If a required bundle is not in the catalog
            UnresolvedDependencyError: If an imported package has no exporter
        """
        dep_graph = cls(catalog)
        for unit in catalog:
            dep_graph.graph.add_node(unit.key, unit=unit)

        for unit in catalog:
            for name in unit.requires:
                if name not in catalog:
                    raise UnknownRequiredBundleError(name, unit.id)
                dep_graph._add_edge(unit, name, f"require {name}")

            for package in unit.imports:
                if catalog.is_system_package(package) or package in unit.exports:
                    continue
                providers = [p for p in catalog.exporters(package) if p.key != unit.key]
                if not providers:
                    raise UnresolvedDependencyError(package, unit.id)
                if len(providers) > 1:
                    candidates = ", ".join(p.id for p in providers)
                    if providers[0].is_reactor:
                        logger.debug(f"{unit.id}: package {package} offered by {candidates}, preferring reactor {providers[0].id}")
                    else:
                        logger.warning(f"{unit.id}: package {package} offered by {candidates}, using first match {providers[0].id}")
                dep_graph._add_edge(unit, providers[0].key, f"import {package}")

        logger.info(
            f"Dependency graph: {dep_graph.graph.number_of_nodes()} units, "
            f"{dep_graph.graph.number_of_edges()} edges"
        )
        return dep_graph

    def _add_edge(self, unit: Unit, target: str, reason: str) -> None:
        if target == unit.key:
            return
        if not self.graph.has_edge(unit.key, target):
            self.graph.add_edge(unit.key, target, via=[])
        self.graph[unit.key][target]["via"].append(reason)
        logger.debug(f"{unit.key} -> {target} ({reason})")

    def unit(self, key: str) -> Unit:
        return self.graph.nodes[key]["unit"]

    def requirements(self, key: str) -> List[str]:
        """Keys of the units a unit directly requires"""
        return list(self.graph.successors(key))

    def requirers(self, key: str) -> List[str]:
        """Keys of the units directly requiring a unit"""
        return list(self.graph.predecessors(key))

    def has_edge(self, source: str, target: str) -> bool:
        return self.graph.has_edge(source, target)

    def reactor_condensation(self) -> nx.DiGraph:
        """
        Collapse reactor dependency cycles into single nodes

        Returns:
            Acyclic graph of the reactor-only subgraph's strongly connected
            components. Node attribute ``members`` holds the member keys,
            graph attribute ``mapping`` maps each reactor key to its node.
        """
        reactor_keys = [u.key for u in self.catalog.reactor_units]
        return nx.condensation(self.graph.subgraph(reactor_keys))

    def cycles(self) -> List[List[str]]:
        """Dependency cycles, for diagnostics"""
        return [sorted(c) for c in nx.strongly_connected_components(self.graph) if len(c) > 1]
