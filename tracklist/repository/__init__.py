"""Repository layer: SQL for each entity store.

Functions take an executor (``Database`` or a transaction ``Session``) and the
owner first, so no statement can run without an owner filter.
"""
