"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Each domain (jobs, favorites, referrals, reservations,
commission) has its own service in ``services`` and exposes a router
defined in ``api/endpoints``.
"""

from .main import app  # noqa: F401
