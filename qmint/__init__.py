"""
qMint Typed Collectible Issuance

Core imports are lazily loaded so that importing a submodule (e.g. the
config loader) does not pull in the whole package.

    from qmint.collection import TypedTokenCollection
    from qmint.ledger import OwnerAuthority
    from qmint.exceptions import PausedError
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy access to the most used names."""
    if name == 'TypedTokenCollection':
        from .collection import TypedTokenCollection
        return TypedTokenCollection
    elif name == 'CollectionStore':
        from .storage import CollectionStore
        return CollectionStore
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'qmint' has no attribute {name!r}")

__all__ = ['TypedTokenCollection', 'CollectionStore', 'load_config']
