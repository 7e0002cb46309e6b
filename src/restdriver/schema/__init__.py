"""Schema layer — entity models and path resolution.

Depends on the domain layer only.
"""
