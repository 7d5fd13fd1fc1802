"""
Declarative field-constraint table for auction filters.

Each entry maps a dotted field path to its field info. The strict validator
(`ModelBuilder`) and the system instruction (`PromptGenerator`) are both
generated from this table.

Field info keys:
    type: object | array | string | integer | year
    item_type: item type for arrays (enum | string)
    enum: Enum class to use for enum items, instead of a generated one
    values: allowed values (bucket list or enum codes)
    required: whether the field must be present (objects only)
    max_items: maximum array length
    unique_items: whether array items must be distinct
    max_length / pattern: string constraints
    minimum / maximum: bounds for year fields
    snap: numeric value is snapped to the nearest entry of `values`
    description: prose shown to the completion service
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional

from filter_translator.core.enums import EFuelType, get_enum_as_key_value_pairs
from filter_translator.core.models import FilterConstraints


def _join(values) -> str:
    return ", ".join(str(v) for v in values)


def build_field_constraints(
    constraints: FilterConstraints, today: Optional[date] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Build the constraint table for the given configuration.

    Args:
        constraints: Allowed values and bounds
        today: Date that resolves an open registration year bound
               (defaults to date.today())

    Returns:
        Ordered dictionary mapping field paths to field info
    """
    fuel_pairs = json.dumps(get_enum_as_key_value_pairs(EFuelType))
    min_year = constraints.min_registration_year
    max_year = constraints.max_registration_year or (today or date.today()).year
    zip_len = constraints.zip_prefix_length
    mileages = list(constraints.mileages)
    radius = list(constraints.search_radius)

    return {
        "fuelTypes": {
            "type": "array",
            "item_type": "enum",
            "enum": EFuelType,
            "values": [member.value for member in EFuelType],
            "max_items": constraints.max_fuel_types,
            "unique_items": True,
            "description": (
                "The fuel types of the vehicle. This is an array of codes. "
                f"Get the values from the following dictionary: {fuel_pairs}. "
                f"At most {constraints.max_fuel_types} distinct values. "
                "This field is optional, if no fuel type is mentioned do not use it."
            ),
        },
        "includeCountries": {
            "type": "array",
            "item_type": "enum",
            "values": list(constraints.countries),
            "unique_items": True,
            "description": (
                "Countries from which auctions should be included in the search. "
                "This is an array of two-letter country codes, for example DE for "
                "Germany or FR for France. Only accepts countries from the list: "
                f"[{_join(constraints.countries)}]. If this field is passed, do not "
                "use the distance field."
            ),
        },
        "locationZipCodeQuery": {
            "type": "string",
            "max_length": zip_len,
            "pattern": rf"^\d{{1,{zip_len}}}$",
            "description": (
                f"Filters auctions by zipcode prefix. Only the first {zip_len} digits "
                f"are used: if more than {zip_len} digits are given, keep the first "
                f"{zip_len}. Only use this field if includeCountries has exactly one "
                "entry. If more than one country or no country is passed, do not use "
                "this field. If this field is passed, do not use the distance field."
            ),
        },
        "distance": {
            "type": "object",
            "required": False,
            "description": "Search around the user's own location.",
        },
        "distance.radius": {
            "type": "integer",
            "values": radius,
            "snap": True,
            "description": (
                "The radius in kilometers around the user to search in. Do not use "
                "this field if includeCountries or locationZipCodeQuery is passed. "
                "If the value is not an integer, round it to the nearest integer. "
                f"The value has to be from this array: [{_join(radius)}]. If the "
                "value is not in the array, use the closest value."
            ),
        },
        "vehicleSearchQuery": {
            "type": "object",
            "required": True,
            "description": "Constraints on the vehicle itself.",
        },
        "vehicleSearchQuery.colors": {
            "type": "array",
            "item_type": "string",
            "description": "The colors of the vehicle. The values should be in English.",
        },
        "vehicleSearchQuery.makers": {
            "type": "array",
            "item_type": "string",
            "description": (
                "The makers of the vehicle. Normalize each value to the complete "
                "name of the manufacturer, for example VW becomes Volkswagen."
            ),
        },
        "vehicleSearchQuery.ezFrom": {
            "type": "year",
            "minimum": min_year,
            "maximum": max_year,
            "pattern": r"^\d{4}$",
            "description": (
                "The lower bound of the first registration date of the vehicle, as "
                f"a year string in the format YYYY. The lowest accepted value is "
                f"{min_year} and the highest is {max_year}. This field is optional."
            ),
        },
        "vehicleSearchQuery.ezTo": {
            "type": "year",
            "minimum": min_year,
            "maximum": max_year,
            "pattern": r"^\d{4}$",
            "description": (
                "The upper bound of the first registration date of the vehicle, as "
                f"a year string in the format YYYY. The lowest accepted value is "
                f"{min_year} and the highest is {max_year}. If this value is lower "
                "than ezFrom, make it equal to ezFrom. This field is optional."
            ),
        },
        "vehicleSearchQuery.mileageFrom": {
            "type": "integer",
            "values": mileages,
            "snap": True,
            "description": (
                "The lower bound of the mileage of the vehicle in kilometers. If the "
                "value is not an integer, round it to the nearest integer. The value "
                f"has to be from this array: [{_join(mileages)}]. If the value is not "
                "in the array, use the closest value."
            ),
        },
        "vehicleSearchQuery.mileageTo": {
            "type": "integer",
            "values": mileages,
            "snap": True,
            "description": (
                "The upper bound of the mileage of the vehicle in kilometers. If the "
                "value is not an integer, round it to the nearest integer. The value "
                f"has to be from this array: [{_join(mileages)}]. If the value is not "
                "in the array, use the closest value."
            ),
        },
    }


def get_leaf_fields(field_constraints: Dict[str, Dict[str, Any]]) -> List[str]:
    """Return the paths of all non-object fields."""
    return [
        path for path, info in field_constraints.items()
        if info.get("type") != "object"
    ]
