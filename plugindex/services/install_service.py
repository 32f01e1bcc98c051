"""
Install service for plugindex.

Resolves the configuration snippet for a plugin and package-manager
variant, proposes where the plugin file should go, and writes it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional
import logging

from ..config import StoreConfig
from ..domain import LAZY_NVIM, MANAGER_VARIANTS, VIM_PACK, Plugin, Result
from ..exit_codes import PERMISSION_ERROR, StoreError, ValidationError

logger = logging.getLogger(__name__)

FROM_CATALOGUE = "catalogue"
FROM_RECORD = "record"

_TARGET_DIRS = {
    LAZY_NVIM: Path("lua") / "plugins",
    VIM_PACK: Path("plugin"),
}


@dataclass(frozen=True)
class InstallPlan:
    """Snippet and proposed target file for one plugin install."""
    full_name: str
    variant: str
    snippet: str
    target_path: Path
    provenance: str
    origin: str = FROM_CATALOGUE

    def to_dict(self) -> Dict[str, str]:
        return {
            'full_name': self.full_name,
            'variant': self.variant,
            'snippet': self.snippet,
            'target_path': str(self.target_path),
            'provenance': self.provenance,
            'origin': self.origin,
        }


def prepare_snippet(variant: str, snippet: str) -> str:
    """lazy.nvim plugin specs are files that return a table."""
    snippet = snippet.strip()
    if variant == LAZY_NVIM and not snippet.startswith("return "):
        snippet = "return " + snippet
    return snippet


class InstallService:
    """
    Prepares plugin installs.

    Example:
        service = InstallService(config)
        catalogue = client.fetch_install_catalogue("lazy.nvim")
        plan = service.prepare(plugin, "lazy.nvim", catalogue.value).unwrap()
        PluginFileWriter().write(plan)
    """

    def __init__(self, config: StoreConfig):
        self.config = config

    def default_variant(self) -> str:
        return self.config.plugin_manager or LAZY_NVIM

    def target_path(self, plugin: Plugin, variant: str) -> Path:
        install_dir = Path(self.config.install_dir).expanduser()
        return install_dir / _TARGET_DIRS[variant] / f"{plugin.name}.lua"

    def prepare(
        self,
        plugin: Plugin,
        variant: Optional[str] = None,
        catalogue: Optional[Mapping[str, str]] = None,
    ) -> Result[InstallPlan]:
        """
        Build the install plan for ``plugin``.

        A snippet from the fetched per-manager catalogue takes precedence
        over the one embedded in the plugin record.

        Args:
            plugin: Plugin to install
            variant: Manager variant (configured manager if None)
            catalogue: Fetched ``full_name -> snippet`` mapping for ``variant``

        Returns:
            Result with the plan, or ValidationError when the variant is
            unknown or the plugin has no snippet for it
        """
        variant = variant or self.default_variant()
        if variant not in MANAGER_VARIANTS:
            return Result.failure(ValidationError(
                f"Unknown plugin manager '{variant}'. Valid managers: {', '.join(MANAGER_VARIANTS)}"
            ))

        snippet = (catalogue or {}).get(plugin.full_name)
        if snippet and snippet.strip():
            origin = FROM_CATALOGUE
            provenance = f"{variant} catalogue"
        else:
            inline = plugin.snippet_for(variant)
            if inline is None:
                return Result.failure(ValidationError(
                    f"Plugin '{plugin.full_name}' is not installable with {variant}"
                ))
            snippet = inline.snippet
            origin = FROM_RECORD
            provenance = inline.provenance

        logger.debug(f"Install snippet for {plugin.full_name} ({variant}) from {origin}")
        return Result.success(InstallPlan(
            full_name=plugin.full_name,
            variant=variant,
            snippet=prepare_snippet(variant, snippet),
            target_path=self.target_path(plugin, variant),
            provenance=provenance,
            origin=origin,
        ))


class PluginFileWriter:
    """Writes plugin files; never overwrites an existing one."""

    def header(self, plan: InstallPlan) -> str:
        return f"-- Plugin: {plan.full_name}\n-- Installed via plugindex\n\n"

    def write(self, plan: InstallPlan, content: Optional[str] = None,
              path: Optional[Path] = None) -> Result[Path]:
        """
        Write the plugin file.

        Args:
            plan: Prepared install plan
            content: Edited snippet (the plan's snippet if None)
            path: Edited target path (the plan's target if None)

        Returns:
            Result with the written path
        """
        target = Path(path or plan.target_path).expanduser()
        if target.exists():
            return Result.failure(ValidationError(
                f"Plugin file '{target.name}' already exists at: {target}"
            ))

        body = plan.snippet if content is None else content
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'x', encoding='utf-8') as f:
                f.write(self.header(plan))
                f.write(body)
                if not body.endswith("\n"):
                    f.write("\n")
        except FileExistsError:
            return Result.failure(ValidationError(
                f"Plugin file '{target.name}' already exists at: {target}"
            ))
        except OSError as e:
            return Result.failure(StoreError(
                f"Failed to create plugin file {target}: {e}", PERMISSION_ERROR
            ))

        logger.info(f"Plugin installed: {plan.full_name} at {target}")
        return Result.success(target)
