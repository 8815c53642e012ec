"""Phased planning and parallel swarm execution on top of LangGraph."""

from __future__ import annotations

__version__ = "0.1.0"
