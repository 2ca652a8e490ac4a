"""
=============================================================================
ERRORS AND EXIT CODES
=============================================================================

The relay distinguishes two kinds of failure:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FAILURE TAXONOMY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FATAL (process exits with a distinct code)                        │
    │   ├── ResolveError   getaddrinfo() failed             exit 1        │
    │   ├── BindError      no candidate address bound       exit 2        │
    │   ├── ListenError    listen() on the bound socket     exit 3        │
    │   ├── PollError      the readiness wait failed        exit 4        │
    │   └── usage (CLI)    bad flags or configuration       exit 64       │
    │                                                                      │
    │   RECOVERABLE (logged, contained to one connection)                 │
    │   ├── accept() failure                                              │
    │   ├── recv() failure or end-of-stream                               │
    │   └── send() failure to one recipient                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Recoverable failures are plain OSErrors caught inside the handlers. They
never reach this module.

=============================================================================
"""

from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Process exit codes."""

    OK = 0
    RESOLVE_FAILED = 1
    BIND_FAILED = 2
    LISTEN_FAILED = 3
    POLL_FAILED = 4
    USAGE = 64  # sysexits EX_USAGE: bad flags or configuration


class RelayError(Exception):
    """Base class for every error raised by relayserver."""


class FatalError(RelayError):
    """
    An error the server cannot continue after.

    Subclasses set a class-level exit_code. Raising FatalError or
    StartupError directly requires passing one.

    Attributes:
        exit_code: The process exit code the CLI should use. Never OK.
    """

    exit_code: Optional[ExitCode] = None

    def __init__(self, message: str, exit_code: Optional[ExitCode] = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        if self.exit_code is None or self.exit_code == ExitCode.OK:
            raise TypeError(f"{type(self).__name__} needs a failure exit code")


class StartupError(FatalError):
    """Raised while the listening socket is being set up."""


class ResolveError(StartupError):
    exit_code = ExitCode.RESOLVE_FAILED


class BindError(StartupError):
    exit_code = ExitCode.BIND_FAILED


class ListenError(StartupError):
    exit_code = ExitCode.LISTEN_FAILED


class PollError(FatalError):
    """
    The readiness wait itself failed.

    This points at a corrupted descriptor table, not a transient
    condition, so the event loop does not try to recover.
    """

    exit_code = ExitCode.POLL_FAILED
