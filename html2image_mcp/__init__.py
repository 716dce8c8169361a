"""
HTML to Image MCP Server
========================

A Model Context Protocol (MCP) server that renders HTML markup, remote URLs and
local HTML files to raster images through headless browser automation.

This package provides:
- A typed tool catalog with schema validation shared by every transport
- A line-delimited JSON-RPC channel over stdio
- FastAPI HTTP JSON-RPC endpoint and Server-Sent Events progress stream
- Browser automation with Playwright
"""

__version__ = "2.6.0"
__author__ = "html2image-mcp Team"
