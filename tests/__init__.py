"""
Test suite for meta-vaults

Contains:
- tests/conftest.py : Tokens, base vaults, swap router and meta vault fixtures
- tests/unit/       : Unit and scenario tests for individual modules
"""
