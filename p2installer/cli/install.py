"""Installation CLI commands

Commands:
- p2install install: Install reactor plugins and features into a buildroot
- p2install inspect: Report the units found in a dropin tree
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from p2installer.config import load_settings
from p2installer.core.install import (
    EclipseInstaller,
    InstallationRequest,
    RepositoryResolver,
    TreeLayoutError,
    scan_dropins,
)
from p2installer.core.install.exceptions import ConfigError

console = Console()
logger = logging.getLogger(__name__)


def parse_mappings(mappings: Tuple[str, ...]) -> Dict[str, str]:
    """Parse UNIT=SUBPACKAGE pairs"""
    parsed = {}
    for mapping in mappings:
        unit_id, sep, subpackage = mapping.partition("=")
        if not sep or not unit_id.strip() or not subpackage.strip():
            raise click.BadParameter(f"Expected UNIT=SUBPACKAGE, got {mapping!r}", param_hint="--map")
        parsed[unit_id.strip()] = subpackage.strip()
    return parsed


@click.command(name="install")
@click.argument("plugins", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--feature", "features", multiple=True, type=click.Path(exists=True, path_type=Path), help="Reactor feature artifact (repeatable)")
@click.option("--build-root", required=True, type=click.Path(file_okay=False, path_type=Path), help="Buildroot to install into")
@click.option("--dropin-dir", default=None, help="Dropin directory, relative to the buildroot")
@click.option("--main-package", default=None, help="Subpackage for units not placed otherwise")
@click.option("--map", "mappings", multiple=True, metavar="UNIT=SUBPACKAGE", help="Install a reactor unit into a subpackage (repeatable)")
@click.option("--repository", "repositories", multiple=True, type=click.Path(path_type=Path), help="Directory of external bundles (repeatable)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Settings file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def install_cmd(
    plugins: Tuple[Path, ...],
    features: Tuple[Path, ...],
    build_root: Path,
    dropin_dir: Optional[str],
    main_package: Optional[str],
    mappings: Tuple[str, ...],
    repositories: Tuple[Path, ...],
    config_path: Optional[Path],
    verbose: bool,
):
    """Install reactor plugins and features into dropin subpackages

    Examples:
        p2install install target/*.jar --build-root buildroot
        p2install install a.jar b.jar --build-root br --map a=sub --repository /usr/share/java
    """
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.INFO),
        format='%(levelname)s: %(message)s'
    )
    logger.debug(f"Settings: {settings}")

    if not plugins and not features:
        console.print("[yellow]Nothing to install[/yellow]")
        return

    try:
        request = InstallationRequest(
            build_root=build_root,
            target_dropin_directory=Path(dropin_dir or settings.dropin_directory),
            main_package_id=main_package or settings.main_package,
            plugins=list(plugins),
            features=list(features),
            package_mappings=parse_mappings(mappings),
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    resolver = RepositoryResolver(list(repositories) or settings.repositories)
    installer = EclipseInstaller(resolver=resolver, system_packages=settings.system_packages)
    result = installer.perform_installation(request)

    if not result.success:
        console.print(f"[red]✗ Installation failed ({result.error_code.value}):[/red] {escape(result.error or '')}")
        if result.hint:
            console.print(f"[dim]{escape(result.hint)}[/dim]")
        sys.exit(1)

    table = Table(title=f"Installed into {escape(str(request.dropin_root))}")
    table.add_column("Subpackage", style="cyan")
    table.add_column("Unit")
    table.add_column("Version")
    table.add_column("Kind")
    table.add_column("Placement")
    for capability in result.installed:
        table.add_row(
            escape(capability.subpackage),
            escape(capability.unit_id),
            escape(capability.version),
            capability.kind.value,
            capability.placement.value,
        )
    console.print(table)
    console.print(
        f"[green]✓ Installed {len(result.installed)} units into "
        f"{len(result.subpackages)} subpackages[/green] ({result.duration_ms}ms)"
    )


@click.command(name="inspect")
@click.argument("dropins", type=click.Path(exists=True, file_okay=False, path_type=Path))
def inspect_cmd(dropins: Path):
    """Show the units installed in a dropin directory"""
    try:
        entries = scan_dropins(dropins)
    except TreeLayoutError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    if not entries:
        console.print("No units installed.")
        return

    table = Table()
    table.add_column("Subpackage", style="cyan")
    table.add_column("Category")
    table.add_column("Unit")
    table.add_column("Kind")
    for entry in entries:
        table.add_row(escape(entry.subpackage), entry.category, escape(entry.unit_id), entry.kind.value)
    console.print(table)
    console.print(f"\nTotal: {len(entries)} units")
