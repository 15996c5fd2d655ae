"""
Test Suite for the Chancery Staff Service.

All tests run against the in-memory store and identity provider
(see conftest.py); no MongoDB or Firebase project is needed.

To run tests:
    pytest tests/
"""
