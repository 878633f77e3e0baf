"""Shared fixtures: external repository and installer harness"""

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from builders import Feature, Plugin
from p2installer.core.install import (
    EclipseInstaller,
    InstallationRequest,
    InstallationResult,
    RepositoryResolver,
    TreeEntry,
    scan_dropins,
)


@pytest.fixture
def repository(tmp_path: Path) -> Path:
    """External repository holding commons-io, commons-lang, junit and hamcrest"""
    repo = tmp_path / "repository"
    repo.mkdir()
    Plugin("org.apache.commons.io", "2.4.0").export_package("org.apache.commons.io").write_bundle(repo / "commons-io.jar")
    Plugin("org.apache.commons.lang", "2.6.0").export_package("org.apache.commons.lang").write_bundle(repo / "commons-lang.jar")
    (repo / "junit").mkdir()
    Plugin("org.junit", "4.11.0") \
        .export_package("junit.framework") \
        .export_package("org.junit") \
        .require_bundle("org.hamcrest.core") \
        .write_bundle(repo / "junit" / "junit.jar")
    Plugin("org.hamcrest.core", "1.3.0").export_package("org.hamcrest").write_bundle(repo / "hamcrest-core.jar")
    return repo


class InstallerHarness:
    """Reactor of plugins installed into a fresh buildroot"""

    def __init__(self, tmp_path: Path, repository: Optional[Path] = None):
        self.root = tmp_path / "root"
        self.root.mkdir()
        self.reactor = tmp_path / "reactor"
        self.reactor.mkdir()
        self.plugins: Dict[str, Plugin] = {}
        self.features: Dict[str, Feature] = {}
        self.request = InstallationRequest(
            build_root=self.root,
            target_dropin_directory=Path("dropins"),
            main_package_id="main",
        )
        resolver = RepositoryResolver([repository]) if repository else None
        self.installer = EclipseInstaller(resolver=resolver)

    def add_reactor_plugin(self, id: str) -> Plugin:
        if id not in self.plugins:
            self.plugins[id] = Plugin(id)
        return self.plugins[id]

    def add_reactor_feature(self, id: str) -> Feature:
        if id not in self.features:
            self.features[id] = Feature(id)
        return self.features[id]

    def perform(self) -> InstallationResult:
        for id, plugin in self.plugins.items():
            self.request.add_plugin(plugin.write_bundle(self.reactor / f"{id}.jar"))
        for id, feature in self.features.items():
            self.request.add_feature(feature.write_jar(self.reactor / f"{id}.feature.jar"))
        return self.installer.perform_installation(self.request)

    def tree(self) -> List[TreeEntry]:
        return scan_dropins(self.root / "dropins")


@pytest.fixture
def harness(tmp_path: Path, repository: Path) -> InstallerHarness:
    return InstallerHarness(tmp_path, repository)
