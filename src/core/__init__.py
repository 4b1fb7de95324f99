"""Core domain package for greet-and-react.

Core contains the subscription store, command parsing, matching, and reaction
dispatch without any Slack or storage-specific code, keeping the business
logic portable.
"""
