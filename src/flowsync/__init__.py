"""flowsync - keep a flow-diagram's DSL text and its node/edge graph in sync."""

__version__ = "1.0.0"
