"""
Core Business Logic
==================

Schema validation, rendering orchestration, image storage and progress events.
"""
