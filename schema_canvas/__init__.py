"""Entity-relationship diagram editing core: document store, geometry and layout."""

__version__ = "0.1.0"
