"""
Configuration management components.

NOTE: Modules are imported directly from their source to avoid circular imports
(models depend on processing_defaults, config_manager depends on models).
Import from specific modules, not from this __init__.py.
"""
