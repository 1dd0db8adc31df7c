"""
Locus Test Suite.

- unit/: Cache controller, freshness, stores, providers, API and support code
- conftest.py: Shared fixtures (manual clock, in-memory store, fake providers)

Run tests with: pytest
"""
