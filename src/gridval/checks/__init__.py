"""Finding catalogs, result layers, the check engine and reference checks.

Import from the submodules, e.g. ``from gridval.checks.engine import CheckEngine``.
The reference checks are ``gridval.checks.ani``, ``.olf`` and ``.drn``.
"""
