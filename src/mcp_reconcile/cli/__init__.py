"""Command-line interface for MCP Reconcile."""
