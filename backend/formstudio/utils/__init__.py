"""
Utility modules for IDTA Form Studio.
"""

from formstudio.utils.paths import join_path, split_path_key, to_path_key

__all__ = ["join_path", "split_path_key", "to_path_key"]
