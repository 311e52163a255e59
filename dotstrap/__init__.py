"""dotstrap: workstation component and dotfiles manager.

Core design goals:
- Explicit catalog, no global state
- Idempotent symlink deployment
- Every replaced file is backed up first
- Dry-run through a single executor
- Centralized logging
"""

__all__ = []
