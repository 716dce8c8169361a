"""
Test Suite
==========

Test Categories:
- unit: Unit tests for individual components
- integration: Transports wired to the dispatcher, and reference scenarios
"""
