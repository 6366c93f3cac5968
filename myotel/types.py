"""Public type definitions for myotel.

Example:
    >>> from myotel.types import AttributeValue, ResourceAttributes
    >>> extra: ResourceAttributes = (("team", "payments"),)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

# Attribute value types following OTEL specification
AttributeValue = str | bool | int | float | Sequence[str] | Sequence[bool] | Sequence[int] | Sequence[float]

# Attributes dictionary type
Attributes = Mapping[str, AttributeValue]

# Ordered resource attribute pairs accepted by InitConfig
ResourceAttributes = tuple[tuple[str, str], ...]

__all__ = [
    "AttributeValue",
    "Attributes",
    "ResourceAttributes",
]
