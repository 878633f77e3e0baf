from __future__ import annotations

import zipfile

import pytest

from builders import Feature, Plugin
from p2installer.core.install import (
    MaterializationError,
    Placement,
    SubpackageAssignment,
    TreeMaterializer,
    UnitCatalog,
    UnitOrigin,
    load_unit,
)


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    return path


def test_reactor_jar_is_copied(tmp_path, root) -> None:
    unit = load_unit(Plugin("foo").write_bundle(tmp_path / "foo.jar"))
    capability = TreeMaterializer(root).place(unit, "main")

    target = root / "dropins" / "main" / "eclipse" / "plugins" / "foo_1.0.0.jar"
    assert capability.path == target
    assert capability.placement == Placement.COPY
    assert target.is_file() and not target.is_symlink()
    assert target.read_bytes() == (tmp_path / "foo.jar").read_bytes()


def test_external_jar_is_symlinked(tmp_path, root) -> None:
    jar = Plugin("lib").write_bundle(tmp_path / "lib.jar")
    unit = load_unit(jar, origin=UnitOrigin.EXTERNAL)
    capability = TreeMaterializer(root, "custom").place(unit, "sub")

    target = root / "custom" / "sub" / "eclipse" / "plugins" / "lib_1.0.0.jar"
    assert capability.placement == Placement.LINK
    assert target.is_symlink()
    assert target.resolve() == jar.resolve()


def test_dir_shaped_jar_is_extracted(tmp_path, root) -> None:
    jar = Plugin("foo").add_mf_entry("Eclipse-BundleShape", "dir").write_bundle(tmp_path / "foo.jar")
    TreeMaterializer(root).place(load_unit(jar), "main")

    target = root / "dropins" / "main" / "eclipse" / "plugins" / "foo_1.0.0"
    assert target.is_dir() and not target.is_symlink()
    assert (target / "META-INF" / "MANIFEST.MF").is_file()


def test_external_directory_bundle_is_copied(tmp_path, root) -> None:
    source = Plugin("lib").write_directory(tmp_path / "repo" / "lib_1.0.0")
    unit = load_unit(source, origin=UnitOrigin.EXTERNAL)
    capability = TreeMaterializer(root).place(unit, "main")

    assert capability.placement == Placement.COPY
    assert not capability.path.is_symlink()
    assert (capability.path / "plugin.properties").is_file()


def test_external_feature_is_copied(tmp_path, root) -> None:
    jar = Feature("feat").write_jar(tmp_path / "feat.jar")
    unit = load_unit(jar, origin=UnitOrigin.EXTERNAL)
    capability = TreeMaterializer(root).place(unit, "main")

    assert capability.placement == Placement.COPY
    assert capability.path == root / "dropins" / "main" / "eclipse" / "features" / "feat_1.0.0.jar"
    assert not capability.path.is_symlink()


def test_existing_target_is_not_overwritten(tmp_path, root) -> None:
    unit = load_unit(Plugin("foo").write_bundle(tmp_path / "foo.jar"))
    materializer = TreeMaterializer(root)
    materializer.place(unit, "main")

    with pytest.raises(MaterializationError) as exc_info:
        TreeMaterializer(root).place(unit, "main")
    assert exc_info.value.unit_id == "foo"
    assert exc_info.value.path.endswith("foo_1.0.0.jar")


def test_category_directories_created_lazily(tmp_path, root) -> None:
    unit = load_unit(Plugin("foo").write_bundle(tmp_path / "foo.jar"))
    TreeMaterializer(root).place(unit, "main")

    assert (root / "dropins" / "main" / "eclipse" / "plugins").is_dir()
    assert not (root / "dropins" / "main" / "eclipse" / "features").exists()


def test_extract_rejects_path_traversal(tmp_path) -> None:
    jar = tmp_path / "evil.jar"
    with zipfile.ZipFile(jar, "w") as zf:
        zf.writestr("../escape.txt", "nope")
    with pytest.raises(MaterializationError, match="traversal"):
        TreeMaterializer.extract_jar(jar, tmp_path / "out")
    assert not (tmp_path / "escape.txt").exists()


def test_materialize_assignment(tmp_path, root) -> None:
    foo = Plugin("foo").import_package("org.lib").write_bundle(tmp_path / "foo.jar")
    lib = Plugin("lib").export_package("org.lib").write_bundle(tmp_path / "lib.jar")
    catalog = UnitCatalog()
    catalog.add(load_unit(foo))
    catalog.add(load_unit(lib, origin=UnitOrigin.EXTERNAL))

    assignment = SubpackageAssignment(reactor={"foo": "main"}, external={"lib": ["main", "sub"]})
    installed = TreeMaterializer(root).materialize(assignment, catalog)

    assert [(c.unit_id, c.subpackage, c.placement) for c in installed] == [
        ("foo", "main", Placement.COPY),
        ("lib", "main", Placement.LINK),
        ("lib", "sub", Placement.LINK),
    ]
