"""
Kernel Boundary Contract.

Tests that enforce the package boundaries:

1. coop_kernel/** may NOT import coop_services or coop_config.  The kernel
   never depends upward; callers pass it the policy values it needs.

2. coop_config/** may NOT import coop_services.

3. Only coop_kernel.services.ledger_writer assigns Account.current_balance,
   and coop_services never imports the ledger entry model.  Balances move
   only together with a ledger entry.

4. Only coop_config reads environment variables or YAML.

5. Kernel services never commit or roll back, and selectors never write
   through their session.

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _parse(filepath: Path) -> ast.AST:
    return ast.parse(filepath.read_text(), filename=str(filepath))


def _extract_imports(filepath: Path) -> list[tuple[int, str, tuple[str, ...]]]:
    """(line, module, imported names) for every import in a file."""
    results = []
    for node in ast.walk(_parse(filepath)):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name, ()))
        elif isinstance(node, ast.ImportFrom) and node.module:
            names = tuple(alias.name for alias in node.names)
            results.append((node.lineno, node.module, names))
    return results


def _imports_violating(packages, forbidden_prefixes) -> list[str]:
    violations = []
    for package in packages:
        for filepath in _python_files(package):
            for lineno, module, _ in _extract_imports(filepath):
                for prefix in forbidden_prefixes:
                    if module == prefix or module.startswith(f"{prefix}."):
                        rel = filepath.relative_to(REPO_ROOT)
                        violations.append(f"  {rel}:{lineno} imports '{module}'")
    return violations


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestNoUpwardDependencies:

    def test_kernel_does_not_import_services_or_config(self):
        violations = _imports_violating(["coop_kernel"], ("coop_services", "coop_config"))
        assert not violations, (
            "Kernel boundary violation: coop_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_services(self):
        violations = _imports_violating(["coop_config"], ("coop_services",))
        assert not violations, "\n".join(violations)


class TestBalanceWriteGate:
    """Cached balances are written in exactly one place."""

    WRITER = Path("coop_kernel/services/ledger_writer.py")

    def test_only_ledger_writer_assigns_current_balance(self):
        violations = []
        for package in ("coop_kernel", "coop_services"):
            for filepath in _python_files(package):
                rel = filepath.relative_to(REPO_ROOT)
                if rel == self.WRITER:
                    continue
                for node in ast.walk(_parse(filepath)):
                    if isinstance(node, (ast.Assign, ast.AugAssign)):
                        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                        for target in targets:
                            if isinstance(target, ast.Attribute) and target.attr == "current_balance":
                                violations.append(f"  {rel}:{node.lineno}")
        assert not violations, (
            "current_balance assigned outside LedgerWriter:\n" + "\n".join(violations)
        )

    def test_services_do_not_import_ledger_entry_model(self):
        violations = []
        for filepath in _python_files("coop_services"):
            for lineno, module, names in _extract_imports(filepath):
                if "LedgerTransaction" in names:
                    violations.append(f"  {filepath.relative_to(REPO_ROOT)}:{lineno}")
        assert not violations, (
            "coop_services must record entries through LedgerWriter:\n"
            + "\n".join(violations)
        )


class TestConfigurationAccess:
    """Environment and YAML are read only by coop_config."""

    def test_no_environment_or_yaml_outside_config(self):
        violations = []
        for package in ("coop_kernel", "coop_services"):
            for filepath in _python_files(package):
                rel = filepath.relative_to(REPO_ROOT)
                for lineno, module, names in _extract_imports(filepath):
                    if module == "yaml" or (module == "os" and "environ" in names):
                        violations.append(f"  {rel}:{lineno} imports '{module}'")
                source = filepath.read_text()
                if "os.environ" in source or "os.getenv" in source:
                    violations.append(f"  {rel} reads the environment")
        assert not violations, "\n".join(violations)


class TestSessionOwnership:
    """Kernel code never ends the caller's transaction; selectors never write."""

    @staticmethod
    def _session_calls(package: str, methods: set[str]) -> list[str]:
        violations = []
        for filepath in _python_files(package):
            rel = filepath.relative_to(REPO_ROOT)
            for node in ast.walk(_parse(filepath)):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr in methods
                    and isinstance(node.func.value, ast.Attribute)
                    and node.func.value.attr == "session"
                ):
                    violations.append(f"  {rel}:{node.lineno} calls session.{node.func.attr}()")
        return violations

    def test_kernel_services_do_not_commit(self):
        violations = self._session_calls("coop_kernel/services", {"commit", "rollback"})
        assert not violations, "\n".join(violations)

    def test_selectors_do_not_write(self):
        violations = self._session_calls(
            "coop_kernel/selectors", {"add", "delete", "flush", "commit", "rollback"}
        )
        assert not violations, "\n".join(violations)
