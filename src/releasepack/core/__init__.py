"""Core orchestration and workflow management.

This module contains the central orchestration components that sequence the
release pipeline stages, bound their concurrency, and decide whether a
release held by verification warnings continues.
"""
