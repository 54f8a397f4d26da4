"""
export-completion: run-completion tracking for multi-collection exports.

Decides, after a batch export job finishes, whether a collection's files are
all delivered and whether the whole correlated run is complete, and emits the
matching success or monitoring signals.
"""

__version__ = "0.1.0"
