"""
HTTP Transport
==============

FastAPI application exposing the MCP tools over HTTP.

Endpoints:
- POST /rpc: JSON-RPC 2.0 requests (tools/list, tools/call, ...)
- POST /convert: Render shortcut taking tool arguments directly
- GET /sse: Progress event stream
- GET /health: Health check endpoint
- GET /images/*: Saved images
"""
