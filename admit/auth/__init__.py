"""
Admit authentication module.

Verifies callers against the Supabase identity provider.
"""

from .identity import Identity, IdentityProvider

__all__ = [
    "Identity",
    "IdentityProvider",
]
