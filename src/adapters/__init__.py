"""Integration adapters for greet-and-react.

Adapters translate between Slack, SQLite, and HTTP on one side and the core
ports on the other.
"""
