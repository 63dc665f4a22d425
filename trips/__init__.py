"""
Trip recording package.

The package is organized into:
- models.py: finished trip and speeding incident models
- services/: the per-trip recorder fed by the live tick stream
"""
