"""
Message handlers bound to consumer queues
"""

from .audit_sink import AuditSink
from .counter_updater import CounterUpdater

__all__ = ["AuditSink", "CounterUpdater"]
