"""
Top‑level package for the Microjob Marketplace API.

This file makes ``microjob_api`` a Python package so that modules
within ``app`` can be imported using fully qualified names like
``microjob_api.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
