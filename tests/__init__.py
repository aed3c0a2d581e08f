"""Test suite for Atelier Muse.

- unit/: Unit tests per component (caching, providers, orchestration, cli, ...)
- conftest.py: Shared fixtures, including an in-process generation backend
"""
