#!/usr/bin/env python3
"""Test runner for the secret synchronization controller."""

import subprocess
import sys
from pathlib import Path

SUITES = {
    "unit": "tests/unit/",
    "integration": "tests/integration/",
    "backends": "tests/unit/test_infrastructure/",
    "reconcile": "tests/unit/test_core/",
}


def run_tests(test_path: str = "tests/", verbose: bool = True, coverage: bool = False):
    """Run tests with optional coverage."""
    project_root = Path(__file__).parent

    cmd = [sys.executable, "-m", "pytest"]

    if verbose:
        cmd.append("-v")

    if coverage:
        cmd.extend(
            [
                "--cov=secret_sync",
                "--cov-report=term-missing",
                "--cov-report=html:htmlcov",
            ]
        )

    cmd.append(str(project_root / test_path))

    print(f"Running: {' '.join(cmd)}")
    print("-" * 50)

    try:
        result = subprocess.run(cmd, cwd=project_root)
        return result.returncode
    except KeyboardInterrupt:
        print("\nTests interrupted by user")
        return 130


def main():
    """Main test runner."""
    import argparse

    parser = argparse.ArgumentParser(description="Run secret-sync tests")
    parser.add_argument("--path", default="tests/", help="Test path to run")
    parser.add_argument(
        "--no-verbose", action="store_true", help="Disable verbose output"
    )
    parser.add_argument("--coverage", action="store_true", help="Run with coverage")
    parser.add_argument(
        "--suite", choices=sorted(SUITES), help="Run one test suite only"
    )

    args = parser.parse_args()

    test_path = SUITES[args.suite] if args.suite else args.path

    exit_code = run_tests(
        test_path=test_path, verbose=not args.no_verbose, coverage=args.coverage
    )

    if exit_code == 0:
        print("\n✅ All tests passed!")
    else:
        print(f"\n❌ Tests failed with exit code {exit_code}")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
