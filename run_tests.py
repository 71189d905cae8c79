#!/usr/bin/env python3
"""
Test runner for Vinofind.

Runs pytest with coverage against the installed package
(`pip install -e ".[test]"` first).
"""

import sys

import pytest

if __name__ == "__main__":
    # Run with verbose output and coverage
    exit_code = pytest.main([
        "tests/",
        "-v",
        "--tb=short",
        "--cov=vinofind",
        "--cov-report=term-missing",
        "--cov-report=html"
    ])
    sys.exit(exit_code)
