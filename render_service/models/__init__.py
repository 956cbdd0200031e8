"""
Data Models
===========

Pydantic data models for request/response validation and internal data structures.
"""
