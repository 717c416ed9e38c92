"""
Import-boundary enforcement for the WBS kernel.

1. Domain purity        -- wbs_kernel/domain/** may not import the DB, ORM,
                           models, services, selectors or SQLAlchemy.
2. Config direction     -- wbs_kernel/** never imports wbs_config.
3. Read side            -- wbs_kernel/selectors/** may not import services.
4. Counter-only codes   -- the allocator never derives the next code from
                           an aggregate max over existing rows.
5. Invariants declared  -- every KernelInvariant is named by the service
                           that enforces it.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

from wbs_kernel.invariants import ALL_KERNEL_INVARIANTS, FORBIDDEN_KERNEL_IMPORTS

PACKAGE_ROOT = Path(__file__).resolve().parents[2]


def _python_files(root: str) -> list[str]:
    """Return all .py files under *root*, sorted for deterministic order."""
    return sorted(glob.glob(str(PACKAGE_ROOT / root / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(root: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in _python_files(root):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                found.append(f"{Path(filepath).relative_to(PACKAGE_ROOT)}:{lineno} imports {module}")
    return found


class TestDomainPurity:

    FORBIDDEN = (
        "sqlalchemy",
        "wbs_kernel.db",
        "wbs_kernel.models",
        "wbs_kernel.services",
        "wbs_kernel.selectors",
        "wbs_config",
    )

    def test_domain_files_found(self):
        assert len(_python_files("wbs_kernel/domain")) >= 6

    def test_domain_imports_nothing_impure(self):
        violations = []
        for filepath in _python_files("wbs_kernel/domain"):
            tree = ast.parse(Path(filepath).read_text())
            # TYPE_CHECKING-only model imports are annotations, not runtime deps
            guarded = {
                id(child)
                for node in ast.walk(tree)
                if isinstance(node, ast.If)
                and isinstance(node.test, ast.Name)
                and node.test.id == "TYPE_CHECKING"
                for child in ast.walk(node)
            }
            for node in ast.walk(tree):
                if isinstance(node, ast.ImportFrom) and node.module and id(node) not in guarded:
                    if _matches_any(node.module, self.FORBIDDEN):
                        violations.append(f"{filepath}:{node.lineno} imports {node.module}")
                elif isinstance(node, ast.Import):
                    for alias in node.names:
                        if _matches_any(alias.name, self.FORBIDDEN):
                            violations.append(f"{filepath}:{node.lineno} imports {alias.name}")
        assert violations == []


class TestLayerDirection:

    def test_kernel_never_imports_config(self):
        assert _violations("wbs_kernel", FORBIDDEN_KERNEL_IMPORTS) == []

    def test_selectors_do_not_import_services(self):
        assert _violations("wbs_kernel/selectors", ("wbs_kernel.services",)) == []

    def test_models_do_not_import_services(self):
        forbidden = ("wbs_kernel.services", "wbs_kernel.selectors")
        assert _violations("wbs_kernel/models", forbidden) == []


class TestCounterOnlyAllocation:

    def test_allocator_never_uses_aggregate_max(self):
        source = (PACKAGE_ROOT / "wbs_kernel/services/code_allocator.py").read_text()
        tree = ast.parse(source)

        calls = [
            node
            for node in ast.walk(tree)
            if isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and node.func.attr in ("max", "count")
            and isinstance(node.func.value, ast.Name)
            and node.func.value.id == "func"
        ]
        assert calls == []

    def test_allocator_locks_counter_row(self):
        source = (PACKAGE_ROOT / "wbs_kernel/services/code_allocator.py").read_text()
        assert "with_for_update()" in source
        assert "CodeCounter" in source


class TestInvariantsDeclared:

    def test_every_invariant_has_an_enforcing_service(self):
        sources = "\n".join(
            Path(f).read_text() for f in _python_files("wbs_kernel/services")
        )
        missing = [inv.name for inv in ALL_KERNEL_INVARIANTS if inv.name not in sources]
        assert missing == []
