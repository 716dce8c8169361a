"""
MCP Server
==========

Tool catalog, dispatcher, JSON-RPC message handling and the stdio transport.
"""
