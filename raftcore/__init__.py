"""Helpers, state machine test doubles and test loggers for Raft consensus."""

__version__ = "0.1.0"
__all__ = ["util", "mockfsm", "testlog"]