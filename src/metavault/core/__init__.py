"""
Core domain models, fixed-point math primitives, and invariants.

This package contains the accounting building blocks that are independent
of external collaborators (tokens, base vaults, swap routers).
"""
