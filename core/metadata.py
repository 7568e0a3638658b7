"""
StoreDirectory Core Metadata
----------------------------
Houses global metadata for versioning and concept-level registration.
This serves as the "identity layer" under the Legible Modular Software model.

Each module reads this metadata for synchronized version context.
"""

__project__ = "StoreDirectory"
__version__ = "1.0.0"
__maintainer__ = "StoreDirectory maintainers"

CORE_METADATA = {
    "project": __project__,
    "version": __version__,
    "maintainer": __maintainer__,
    "description": (
        "StoreDirectory is a store, review and rating directory whose "
        "independent concepts are coordinated by declarative "
        "synchronization rules."
    ),
}


def get_metadata() -> dict:
    """Return current system metadata as a dict."""
    return dict(CORE_METADATA)
