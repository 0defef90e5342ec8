#!/usr/bin/env python3
"""
Keep proxycurl_mcp.core free of MCP server and transport code.

Core talks to Proxycurl over httpx and exposes plain coroutines; only
proxycurl_mcp.transports may touch the MCP SDK. Relative imports are resolved
against the importing module, so `from ..transports import stdio` inside core
is caught as well.

Usage: check_core_imports.py [SRC_ROOT]   (default: <repo>/src)
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path
from typing import Iterator, List, Optional

REPO_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = REPO_ROOT / "src"
CORE_PACKAGE = "proxycurl_mcp.core"

# Core never needs the MCP SDK at all, server or client side.
FORBIDDEN_PREFIXES = (
    "mcp",
    "fastmcp",
    "proxycurl_mcp.transports",
)


def is_forbidden(module: str) -> bool:
    return any(
        module == prefix or module.startswith(prefix + ".")
        for prefix in FORBIDDEN_PREFIXES
    )


def module_name(path: Path, src_root: Path) -> str:
    parts = list(path.relative_to(src_root).with_suffix("").parts)
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def resolve_from(node: ast.ImportFrom, importer: str, is_package: bool) -> Optional[str]:
    """Absolute module named by `from X import ...`, relative forms included."""
    if not node.level:
        return node.module
    package = importer.split(".")
    if not is_package:
        package = package[:-1]
    if node.level - 1 >= len(package):
        return None
    if node.level > 1:
        package = package[: len(package) - (node.level - 1)]
    if node.module:
        package.append(node.module)
    return ".".join(package)


def imported_modules(path: Path, src_root: Path) -> Iterator[str]:
    importer = module_name(path, src_root)
    is_package = path.name == "__init__.py"
    tree = ast.parse(path.read_text(), filename=str(path))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name
        elif isinstance(node, ast.ImportFrom):
            base = resolve_from(node, importer, is_package)
            if not base:
                continue
            yield base
            # `from proxycurl_mcp import transports` names a submodule.
            for alias in node.names:
                yield f"{base}.{alias.name}"


def scan_file(path: Path, src_root: Path = SRC_ROOT) -> List[str]:
    errors: List[str] = []
    seen = set()
    for mod in imported_modules(path, src_root):
        if is_forbidden(mod) and mod not in seen:
            seen.add(mod)
            errors.append(f"{path}: forbidden import '{mod}'")
    return errors


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    src_root = Path(args[0]).resolve() if args else SRC_ROOT
    core_dir = src_root.joinpath(*CORE_PACKAGE.split("."))
    if not core_dir.is_dir():
        print(f"{core_dir}: core package not found", file=sys.stderr)
        return 2

    violations: List[str] = []
    for py_file in sorted(core_dir.rglob("*.py")):
        violations.extend(scan_file(py_file, src_root))

    for v in violations:
        print(v, file=sys.stderr)
    return 1 if violations else 0


if __name__ == "__main__":
    sys.exit(main())
