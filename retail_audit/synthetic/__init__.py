"""Synthetic retail data generation.

This package produces realistic-but-fake retail datasets to exercise the
query engines without accessing production data.
"""

from .generator import (
    DEFAULT_COUNTRIES,
    SyntheticConfig,
    generate_dataset,
    generate_products,
)

__all__ = [
    "DEFAULT_COUNTRIES",
    "SyntheticConfig",
    "generate_dataset",
    "generate_products",
]
