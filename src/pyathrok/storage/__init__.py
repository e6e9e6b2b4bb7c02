"""Persistence layer.

The storage manager owns the active backend and the cache of restored
records; storage handlers read and write a single key through it.
"""
