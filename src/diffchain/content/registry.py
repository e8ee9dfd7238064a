"""Code-extension registry — built-in table plus config and YAML additions."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Set

import yaml

from diffchain.config.schema import DiffchainConfig

BUILTIN_CODE_EXTENSIONS: FrozenSet[str] = frozenset({
    ".go",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".py",
    ".java",
    ".cpp",
    ".c",
    ".h",
    ".hpp",
    ".rs",
    ".rb",
    ".php",
    ".cs",
    ".swift",
    ".kt",
    ".scala",
    ".m",
    ".mm",
})


class RegistryError(Exception):
    """Raised when an extensions file cannot be loaded."""


def _canonical(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


class ExtensionRegistry:
    """Lookup table of file extensions treated as source code."""

    def __init__(self, extensions: Optional[Iterable[str]] = None) -> None:
        self._extensions: Set[str] = set()
        self.register_many(BUILTIN_CODE_EXTENSIONS if extensions is None else extensions)

    # ---- registration ----

    def register(self, ext: str) -> None:
        ext = _canonical(ext)
        if ext:
            self._extensions.add(ext)

    def register_many(self, extensions: Iterable[str]) -> None:
        for ext in extensions:
            self.register(ext)

    # ---- queries ----

    @property
    def extensions(self) -> FrozenSet[str]:
        return frozenset(self._extensions)

    def is_code(self, path: str) -> bool:
        """True if the lower-cased extension of *path* is registered."""
        return Path(path).suffix.lower() in self._extensions

    # ---- YAML loading ----

    def load_file(self, path: Path) -> int:
        """Register extensions listed in a YAML file. Returns count added.

        Accepts either a plain list or a mapping with an ``extensions`` key.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise RegistryError(f"Failed to load {path}: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("extensions", [])
        if data is None:
            return 0
        if not isinstance(data, list) or not all(isinstance(e, str) for e in data):
            raise RegistryError(f"{path}: expected a list of extensions")

        before = len(self._extensions)
        self.register_many(data)
        return len(self._extensions) - before


def build_registry(config: DiffchainConfig, root: Optional[Path] = None) -> ExtensionRegistry:
    """Construct the registry for *config*: built-ins, extras, then the YAML file."""
    registry = ExtensionRegistry()
    registry.register_many(config.classifier.extra_extensions)

    if config.classifier.extensions_file:
        ext_path = Path(config.classifier.extensions_file)
        if not ext_path.is_absolute() and root is not None:
            ext_path = root / ext_path
        registry.load_file(ext_path)

    return registry
