"""
Admit framework integrations.

Provides adapters for web frameworks.
"""

# FastAPI adapter is imported conditionally to avoid requiring fastapi
# as a hard dependency

__all__ = []

try:
    from .fastapi import AdmitFastAPI, admit_error_handler

    __all__.extend(["AdmitFastAPI", "admit_error_handler"])
except ImportError:
    pass
