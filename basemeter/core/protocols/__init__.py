"""Core protocols.

Adapters in ``basemeter.adapters`` implement these; domains depend only on
the protocol types.
"""

from basemeter.core.protocols.snapshot import SnapshotSink

__all__ = ["SnapshotSink"]
