"""Grouping utilities for exact-match wall connections."""

from .connections import group_pairs, build_wall_connections

__all__ = ["group_pairs", "build_wall_connections"]
