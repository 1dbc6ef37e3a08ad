"""
SlateInk - annotation interaction engine for rendered document pages.

This package contains:
- editor: Annotation model, geometry, interaction state machine and engine
- services: Supporting services (config, logging)
"""

__version__ = "0.1.0"
