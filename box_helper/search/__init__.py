"""
Search result merging and interactive selection.
"""

from .merger import ResultMerger, merge_results
from .selector import FzfSelector, NumberedSelector, Selector, create_selector, render_entry

__all__ = [
    'ResultMerger',
    'merge_results',
    'Selector',
    'FzfSelector',
    'NumberedSelector',
    'create_selector',
    'render_entry'
]
