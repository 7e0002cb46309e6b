"""Codec layer — value conversion and the query path serializer.

Depends on the domain and schema layers only.
"""
