"""modbamcp: async Mod-BAM analysis operations, served over MCP."""

__version__ = "0.1.0"
