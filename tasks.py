from invoke import task
from pathlib import Path


PACKAGES_DIR = Path("packages")


def get_packages() -> list[Path]:
    return [p for p in PACKAGES_DIR.iterdir() if p.is_dir()]


@task
def typecheck(c):
    """Run mypy on all packages."""
    for pkg in get_packages():
        print(f"\n=== {pkg.name} ===")
        c.run(f"uv run --extra dev mypy {pkg}/src")


@task
def lint(c):
    """Run ruff on all packages."""
    for pkg in get_packages():
        print(f"\n=== {pkg.name} ===")
        c.run(f"uv run --extra dev ruff check {pkg}/src {pkg}/tests")


@task
def fmt(c):
    """Format all packages with ruff."""
    for pkg in get_packages():
        print(f"\n=== {pkg.name} ===")
        c.run(f"uv run --extra dev ruff format {pkg}/src {pkg}/tests")


@task
def test(c):
    """Run the test suites of all packages."""
    for pkg in get_packages():
        print(f"\n=== {pkg.name} ===")
        c.run(f"uv run --extra dev pytest {pkg}/tests")


@task(pre=[typecheck, lint, test])
def check(c):
    """Run all checks (typecheck + lint + test)."""
    pass
