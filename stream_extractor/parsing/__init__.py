"""
Structural parsing components: forward-only document reader, address tracking,
node materialization and parser diagnostic translation.

NOTE: Modules are imported directly from their source to avoid circular imports.
Import from specific modules, not from this __init__.py.
"""
