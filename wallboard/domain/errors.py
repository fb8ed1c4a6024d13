from __future__ import annotations


class WallboardAccessError(RuntimeError):
    """Credentials for the data store were rejected or have expired."""
