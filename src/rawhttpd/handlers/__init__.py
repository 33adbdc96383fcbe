"""
=============================================================================
HANDLERS MODULE
=============================================================================

Request handlers: functions from a parsed request to a response.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Handlers                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function handler  │ root, echo, user_agent                          │
    │                   │ stateless, need nothing but the request         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Class handler     │ FileHandler.get, FileHandler.post               │
    │                   │ bound to a FileStore built from ServerConfig    │
    └─────────────────────────────────────────────────────────────────────┘

Handlers never raise for expected failures (missing file, bad name); they
return the matching error response. Anything unexpected that escapes is
turned into a 500 by the connection loop.

=============================================================================
"""

from .echo import root, echo, user_agent
from .files import FileHandler

__all__ = [
    "root",
    "echo",
    "user_agent",
    "FileHandler",
]
