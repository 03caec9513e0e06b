"""
Root pytest configuration shared by all test tiers.
"""

import pytest


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: unit tests for isolated components"
    )
    config.addinivalue_line(
        "markers", "requires_db: mark test as requiring database"
    )


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Custom test summary at end of test run."""
    print("\n" + "=" * 80)
    print("Ducklingo Test Summary")
    print("=" * 80)

    passed = len(terminalreporter.stats.get('passed', []))
    failed = len(terminalreporter.stats.get('failed', []))
    skipped = len(terminalreporter.stats.get('skipped', []))
    errors = len(terminalreporter.stats.get('error', []))

    print(f"  Passed:  {passed}")
    print(f"  Failed:  {failed}")
    print(f"  Skipped: {skipped}")
    print(f"  Errors:  {errors}")
    print("=" * 80)
