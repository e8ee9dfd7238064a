"""Branch/commit graph."""

from diffchain.branches.graph import BranchGraph, BranchInfo, find_active_branch

__all__ = ["BranchGraph", "BranchInfo", "find_active_branch"]
