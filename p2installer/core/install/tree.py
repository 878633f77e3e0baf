"""Structured report of an installed dropin tree"""

from pathlib import Path
from typing import List

from p2installer.core.install.exceptions import TreeLayoutError
from p2installer.core.install.models import EntryKind, TreeEntry

CATEGORIES = ("plugins", "features")


def _real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _children(path: Path) -> List[Path]:
    return sorted(path.iterdir())


def scan_dropins(dropins_root: Path) -> List[TreeEntry]:
    """
    Walk <dropins>/<subpackage>/eclipse/<category>/ and report every unit

    Args:
        dropins_root: The dropin directory (e.g. <buildroot>/dropins)

    Returns:
        Sorted (subpackage, category, unit_id, kind) entries

    Raises:
        TreeLayoutError: If the tree deviates from the dropin layout
    """
    dropins_root = Path(dropins_root)
    if not _real_dir(dropins_root):
        raise TreeLayoutError(f"Not a directory: {dropins_root}")

    entries = []
    for subpackage_dir in _children(dropins_root):
        if not _real_dir(subpackage_dir):
            raise TreeLayoutError(f"Unexpected file in dropin root: {subpackage_dir}")
        subpackage = subpackage_dir.name

        for eclipse_dir in _children(subpackage_dir):
            if eclipse_dir.name != "eclipse" or not _real_dir(eclipse_dir):
                raise TreeLayoutError(f"Expected only an eclipse directory in {subpackage_dir}, found {eclipse_dir.name}")

            for category_dir in _children(eclipse_dir):
                category = category_dir.name
                if category not in CATEGORIES or not _real_dir(category_dir):
                    raise TreeLayoutError(f"Unexpected category {category} in {eclipse_dir}")
                is_feature = category == "features"

                for unit_path in _children(category_dir):
                    name = unit_path.name
                    is_link = unit_path.is_symlink()
                    is_dir = unit_path.is_dir()
                    # Either dir-shaped or a jar
                    if is_dir == name.endswith(".jar"):
                        raise TreeLayoutError(f"Neither a directory nor a jar: {unit_path}")
                    if is_link and is_dir:
                        raise TreeLayoutError(f"Symlink to a directory-shaped unit: {unit_path}")
                    if is_link and is_feature:
                        raise TreeLayoutError(f"Features are never symlinked: {unit_path}")

                    unit_id = name.partition("_")[0]
                    if is_link:
                        kind = EntryKind.SYMLINK
                    elif is_feature:
                        kind = EntryKind.FEATURE
                    else:
                        kind = EntryKind.PLUGIN
                    entries.append(TreeEntry(subpackage, category, unit_id, kind))

    return sorted(entries)
