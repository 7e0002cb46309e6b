"""Service layer — driver and codec operations returning ServiceResult.

Services may import from domain, schema, codec, and driver layers.
They must never import from commands or output.
"""
