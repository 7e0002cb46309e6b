"""Driver layer — HTTP transport and CRUD orchestration.

Depends on domain, schema, and codec layers plus ``requests``.
"""
