from __future__ import annotations

import zipfile

import pytest

from builders import Feature, Plugin
from p2installer.core.install import (
    ManifestError,
    UnitKind,
    UnitOrigin,
    UnitShape,
    feature_key,
    load_unit,
    parse_header,
    parse_manifest,
)


def test_parse_manifest_joins_continuation_lines() -> None:
    text = (
        "Manifest-Version: 1.0\r\n"
        "Bundle-SymbolicName: org.example.a.very.long.bundle.name.that.does.not.fit.on.o\r\n"
        " ne.line\r\n"
        "\r\n"
        "Name: ignored/Section.class\r\n"
    )
    headers = parse_manifest(text)
    assert headers["bundle-symbolicname"] == "org.example.a.very.long.bundle.name.that.does.not.fit.on.one.line"
    assert "name" not in headers


def test_parse_manifest_rejects_garbage_line() -> None:
    with pytest.raises(ManifestError):
        parse_manifest("Manifest-Version: 1.0\nnot a header\n")


def test_parse_header_clauses_with_attributes_and_directives() -> None:
    clauses = parse_header('a.b;c.d;version="[1.0,2.0)",e;resolution:=optional')
    assert len(clauses) == 2
    assert clauses[0].names == ["a.b", "c.d"]
    assert clauses[0].attributes == {"version": "[1.0,2.0)"}
    assert not clauses[0].optional
    assert clauses[1].names == ["e"]
    assert clauses[1].optional


def test_load_bundle_jar(tmp_path) -> None:
    plugin = Plugin("org.example.foo", "1.2.3") \
        .import_package("org.apache.commons.io") \
        .import_package("java.util") \
        .export_package("org.example.foo.api") \
        .require_bundle("org.junit")
    unit = load_unit(plugin.write_bundle(tmp_path / "foo.jar"))

    assert unit.id == "org.example.foo"
    assert unit.version == "1.2.3"
    assert unit.kind == UnitKind.PLUGIN
    assert unit.shape == UnitShape.ARCHIVE
    assert unit.origin == UnitOrigin.REACTOR
    assert unit.imports == ("org.apache.commons.io", "java.util")
    assert unit.exports == ("org.example.foo.api",)
    assert unit.requires == ("org.junit",)
    assert unit.file_name == "org.example.foo_1.2.3.jar"


def test_long_import_list_survives_line_wrapping(tmp_path) -> None:
    plugin = Plugin("foo")
    packages = [f"org.example.package.number{i}" for i in range(10)]
    for name in packages:
        plugin.import_package(name)
    unit = load_unit(plugin.write_bundle(tmp_path / "foo.jar"))
    assert unit.imports == tuple(packages)


def test_optional_and_system_bundle_requirements_are_dropped(tmp_path) -> None:
    plugin = Plugin("foo") \
        .import_package("org.optional;resolution:=optional") \
        .import_package("org.mandatory;version=\"[1,2)\"") \
        .require_bundle("system.bundle") \
        .require_bundle("org.maybe;resolution:=optional") \
        .require_bundle("org.needed;bundle-version=\"1.0.0\"")
    unit = load_unit(plugin.write_bundle(tmp_path / "foo.jar"))
    assert unit.imports == ("org.mandatory",)
    assert unit.requires == ("org.needed",)


def test_bundle_symbolic_name_directives_are_stripped(tmp_path) -> None:
    plugin = Plugin("foo;singleton:=true")
    unit = load_unit(plugin.write_bundle(tmp_path / "foo.jar"))
    assert unit.id == "foo"


def test_dir_shaped_manifest_header(tmp_path) -> None:
    plugin = Plugin("foo").add_mf_entry("Eclipse-BundleShape", "dir")
    unit = load_unit(plugin.write_bundle(tmp_path / "foo.jar"))
    assert unit.shape == UnitShape.DIRECTORY
    assert unit.file_name == "foo_1.0.0"


def test_bundle_directory_is_directory_shaped(tmp_path) -> None:
    path = Plugin("foo").write_directory(tmp_path / "foo_1.0.0")
    unit = load_unit(path, origin=UnitOrigin.EXTERNAL)
    assert unit.shape == UnitShape.DIRECTORY
    assert unit.origin == UnitOrigin.EXTERNAL
    assert unit.artifact_path == path


def test_load_feature_jar(tmp_path) -> None:
    feature = Feature("org.example.feature", "2.0.0") \
        .include_plugin("org.example.foo") \
        .include_feature("org.example.base") \
        .import_plugin("org.junit")
    unit = load_unit(feature.write_jar(tmp_path / "feature.jar"))

    assert unit.kind == UnitKind.FEATURE
    assert unit.key == feature_key("org.example.feature")
    assert unit.category == "features"
    assert unit.requires == ("org.example.foo", "org.example.base.feature.group", "org.junit")


def test_jar_without_metadata(tmp_path) -> None:
    path = tmp_path / "plain.jar"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("readme.txt", "hello")
    with pytest.raises(ManifestError):
        load_unit(path)


def test_manifest_without_symbolic_name(tmp_path) -> None:
    path = tmp_path / "plain.jar"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\r\n\r\n")
    with pytest.raises(ManifestError, match="Bundle-SymbolicName"):
        load_unit(path)


def test_not_a_zip(tmp_path) -> None:
    path = tmp_path / "broken.jar"
    path.write_bytes(b"not a zip")
    with pytest.raises(ManifestError):
        load_unit(path)


def test_missing_artifact(tmp_path) -> None:
    with pytest.raises(ManifestError, match="not found"):
        load_unit(tmp_path / "missing.jar")
