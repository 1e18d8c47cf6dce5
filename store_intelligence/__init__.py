"""Store Intelligence: external-signal aggregation and insight briefings for store managers"""

__version__ = "1.0.0"
