"""
HTTP API package.

``router.py`` aggregates the domain routers defined in ``endpoints``
under a single router that the application mounts at ``/api``.
"""
