"""
Data Models
===========

Pydantic models for tool arguments, render jobs, results and progress events.
"""
