"""
findgrep - Core Package

A concurrent file-tree search that combines name filtering (find) and
content search (grep) in a single traversal.
"""

__version__ = "0.1.0"
__author__ = "findgrep Team"
