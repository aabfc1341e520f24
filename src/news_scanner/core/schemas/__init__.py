"""Pydantic schemas for input validation.

Sub-modules:
    sources: SourceCreate / SourceUpdate with cadence and result-cap clamping
"""

from __future__ import annotations
