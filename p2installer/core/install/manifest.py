"""Reader for plugin manifests and feature descriptors"""

import logging
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from p2installer.core.install.exceptions import ManifestError
from p2installer.core.install.models import (
    Unit,
    UnitKind,
    UnitOrigin,
    UnitShape,
    feature_key,
)

logger = logging.getLogger(__name__)

MANIFEST_PATH = "META-INF/MANIFEST.MF"
FEATURE_XML = "feature.xml"

# Security limits
MAX_MANIFEST_SIZE = 1024 * 1024  # 1MB

SYSTEM_BUNDLE = "system.bundle"


@dataclass
class ManifestClause:
    """One comma-separated clause of an OSGi header"""
    names: List[str] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)
    directives: Dict[str, str] = field(default_factory=dict)

    @property
    def optional(self) -> bool:
        return self.directives.get("resolution") == "optional"


def _split_unquoted(value: str, separator: str) -> List[str]:
    """Split on separator, ignoring separators inside double quotes"""
    parts = []
    current = []
    quoted = False
    for ch in value:
        if ch == '"':
            quoted = not quoted
            current.append(ch)
        elif ch == separator and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def parse_header(value: str) -> List[ManifestClause]:
    """
    Parse an OSGi header value into clauses

    ``a.b;c.d;version="[1.0,2.0)",e;resolution:=optional`` yields two
    clauses: names ``a.b`` and ``c.d`` with a version attribute, and ``e``
    with an optional resolution directive.

    Args:
        value: Raw header value

    Returns:
        List of parsed clauses
    """
    clauses = []
    for raw_clause in _split_unquoted(value, ","):
        clause = ManifestClause()
        for piece in _split_unquoted(raw_clause, ";"):
            if ":=" in piece:
                key, _, val = piece.partition(":=")
                clause.directives[key.strip()] = _unquote(val)
            elif "=" in piece:
                key, _, val = piece.partition("=")
                clause.attributes[key.strip()] = _unquote(val)
            else:
                clause.names.append(piece)
        if clause.names:
            clauses.append(clause)
    return clauses


def parse_manifest(text: str) -> Dict[str, str]:
    """
    Parse the main section of a JAR manifest

    Header names are returned lower-cased; lines starting with a single
    space continue the previous header.

    Args:
        text: Manifest text

    Returns:
        Dict mapping lower-cased header name to value

    Raises:
        ManifestError: If a line is not a valid header
    """
    headers: Dict[str, str] = {}
    last_key = None
    for line in text.splitlines():
        if not line:
            if headers:
                break
            continue
        if line.startswith(" "):
            if last_key is None:
                raise ManifestError(f"Continuation line without header: {line!r}")
            headers[last_key] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise ManifestError(f"Invalid manifest line: {line!r}")
        last_key = name.strip().lower()
        headers[last_key] = value[1:] if value.startswith(" ") else value
    return headers


def _names(headers: Dict[str, str], header: str, unit_id: str) -> Tuple[str, ...]:
    """Mandatory names declared by a header, in declaration order"""
    names: List[str] = []
    for clause in parse_header(headers.get(header.lower(), "")):
        if clause.optional:
            logger.debug(f"{unit_id}: skipping optional {header} {', '.join(clause.names)}")
            continue
        for name in clause.names:
            if name not in names:
                names.append(name)
    return tuple(names)


def unit_from_manifest(
    headers: Dict[str, str],
    artifact_path: Optional[Path] = None,
    origin: UnitOrigin = UnitOrigin.REACTOR,
    directory: bool = False,
) -> Unit:
    """
    Build a plugin unit from parsed manifest headers

    Args:
        headers: Output of parse_manifest
        artifact_path: Jar file or bundle directory the headers came from
        origin: Reactor or external
        directory: True when the artifact itself is a directory

    Returns:
        Plugin unit

    Raises:
        ManifestError: If Bundle-SymbolicName is missing
    """
    symbolic_name = parse_header(headers.get("bundle-symbolicname", ""))
    if not symbolic_name:
        raise ManifestError(f"Not an OSGi bundle (no Bundle-SymbolicName): {artifact_path}")
    unit_id = symbolic_name[0].names[0]

    shape = UnitShape.ARCHIVE
    if directory or headers.get("eclipse-bundleshape", "").strip() == "dir":
        shape = UnitShape.DIRECTORY

    exports = tuple(
        name
        for clause in parse_header(headers.get("export-package", ""))
        for name in clause.names
    )
    requires = tuple(
        name for name in _names(headers, "Require-Bundle", unit_id) if name != SYSTEM_BUNDLE
    )

    try:
        return Unit(
            id=unit_id,
            version=headers.get("bundle-version", "").strip() or "0.0.0",
            kind=UnitKind.PLUGIN,
            shape=shape,
            origin=origin,
            artifact_path=artifact_path,
            exports=tuple(dict.fromkeys(exports)),
            imports=_names(headers, "Import-Package", unit_id),
            requires=requires,
        )
    except ValueError as e:
        raise ManifestError(f"Invalid bundle metadata in {artifact_path}: {e}")


def unit_from_feature_xml(
    data: bytes,
    artifact_path: Optional[Path] = None,
    origin: UnitOrigin = UnitOrigin.REACTOR,
    directory: bool = False,
) -> Unit:
    """
    Build a feature unit from feature.xml content

    Included plugins and ``<import plugin=...>`` become bundle references;
    included and imported features become feature keys.

    Raises:
        ManifestError: If the descriptor cannot be parsed
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ManifestError(f"Invalid feature.xml in {artifact_path}: {e}")

    if root.tag != "feature" or not root.get("id"):
        raise ManifestError(f"feature.xml without feature id: {artifact_path}")

    requires: List[str] = []
    for plugin in root.findall("plugin"):
        if plugin.get("id"):
            requires.append(plugin.get("id"))
    for included in root.findall("includes"):
        if included.get("optional") == "true":
            continue
        if included.get("id"):
            requires.append(feature_key(included.get("id")))
    for imported in root.findall("requires/import"):
        if imported.get("plugin"):
            requires.append(imported.get("plugin"))
        elif imported.get("feature"):
            requires.append(feature_key(imported.get("feature")))

    try:
        return Unit(
            id=root.get("id"),
            version=root.get("version") or "0.0.0",
            kind=UnitKind.FEATURE,
            shape=UnitShape.DIRECTORY if directory else UnitShape.ARCHIVE,
            origin=origin,
            artifact_path=artifact_path,
            requires=tuple(dict.fromkeys(requires)),
        )
    except ValueError as e:
        raise ManifestError(f"Invalid feature metadata in {artifact_path}: {e}")


def _read_limited(data: bytes, what: str, path: Path) -> bytes:
    if len(data) > MAX_MANIFEST_SIZE:
        raise ManifestError(
            f"{what} too large in {path}: {len(data) / 1024:.2f}KB "
            f"(max: {MAX_MANIFEST_SIZE / 1024}KB)"
        )
    return data


def load_unit(path: Path, origin: UnitOrigin = UnitOrigin.REACTOR) -> Unit:
    """
    Read unit metadata from a jar or a directory without unpacking it

    Args:
        path: Jar file, bundle directory or feature directory
        origin: Reactor or external

    Returns:
        Unit describing the artifact

    Raises:
        ManifestError: If the artifact has no usable metadata
    """
    path = Path(path)
    if not path.exists():
        raise ManifestError(f"Artifact not found: {path}")

    if path.is_dir():
        feature_file = path / FEATURE_XML
        if feature_file.is_file():
            data = _read_limited(feature_file.read_bytes(), FEATURE_XML, path)
            return unit_from_feature_xml(data, path, origin, directory=True)
        manifest_file = path / MANIFEST_PATH
        if manifest_file.is_file():
            data = _read_limited(manifest_file.read_bytes(), MANIFEST_PATH, path)
            return unit_from_manifest(_decode_manifest(data, path), path, origin, directory=True)
        raise ManifestError(f"Directory is neither a bundle nor a feature: {path}")

    try:
        with zipfile.ZipFile(path, "r") as zf:
            names = set(zf.namelist())
            if FEATURE_XML in names:
                data = _read_limited(zf.read(FEATURE_XML), FEATURE_XML, path)
                return unit_from_feature_xml(data, path, origin)
            if MANIFEST_PATH in names:
                data = _read_limited(zf.read(MANIFEST_PATH), MANIFEST_PATH, path)
                return unit_from_manifest(_decode_manifest(data, path), path, origin)
    except zipfile.BadZipFile as e:
        raise ManifestError(f"Invalid jar file {path}: {e}")

    raise ManifestError(f"Jar has neither {MANIFEST_PATH} nor {FEATURE_XML}: {path}")


def _decode_manifest(data: bytes, path: Path) -> Dict[str, str]:
    try:
        return parse_manifest(data.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise ManifestError(f"Manifest is not UTF-8 in {path}: {e}")
