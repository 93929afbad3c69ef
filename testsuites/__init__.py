"""
Test suites package.

Kept importable so page objects and framework helpers can be shared between
the UI suite, the unit tests and ``run_tests.py``.
"""
