"""
Slide specification generation and normalization pipeline.
"""

__version__ = "0.3.0"
