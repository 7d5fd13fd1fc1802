"""
Vehicle domain enumerations shared with the auction platform.
"""

from enum import Enum, IntEnum
from typing import Any, Dict, List


class EFuelType(IntEnum):
    """Fuel type codes used by auction filters."""
    PETROL = 0
    DIESEL = 1
    ELECTRIC = 2
    HYBRID = 3
    HYBRID_PLUGIN = 4
    LPG = 5
    CNG = 6
    HYDROGEN = 7
    ETHANOL = 8
    OTHER = 9


def get_enum_as_key_value_pairs(enum_type: type[Enum]) -> List[Dict[str, Any]]:
    """
    Return an enum as a list of key/value pairs.

    Args:
        enum_type: Enum class to describe

    Returns:
        List like [{"key": "PETROL", "value": 0}, ...]
    """
    return [{"key": member.name, "value": member.value} for member in enum_type]
