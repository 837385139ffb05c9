"""Exceptions raised by the pomanip host.

Manipulators do not define error kinds of their own; anything they raise
propagates to the caller unchanged.

@QK
"""

from __future__ import annotations


class ManipulationError(Exception):
    """A host-level failure (unreadable POM, missing session state, ...)."""
