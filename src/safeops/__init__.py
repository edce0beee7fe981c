"""
SafeOps - safe state mutation primitives.

Atomic file replacement, session-scoped backup and rollback of files and
directory trees, and resumable HTTP downloads that commit through the same
atomic write path.
"""

__version__ = "1.0.0"
