"""Natural-language search over requirements documents.

Documents are split into overlapping word windows, embedded, and stored in
a local vector index; queries combine vector similarity with an optional
lexical boost.
"""

from reqsearch.engine import ReadySearchEngine, SearchEngine

__all__ = ["ReadySearchEngine", "SearchEngine"]

__version__ = "1.0.0"
