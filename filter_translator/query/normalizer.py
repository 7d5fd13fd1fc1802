"""
Repair pass for parsed auction filters.

Applies the deterministic rules the completion service is asked to follow,
before the strict model validates the result.
"""

import copy
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from filter_translator.schema.constraints import get_leaf_fields

logger = logging.getLogger(__name__)

_YEAR_PREFIX_RE = re.compile(r"^\s*(\d{4})")


def snap_to_bucket(value: Any, buckets: List[int]) -> Any:
    """
    Snap a numeric value to the closest bucket.

    Floats are rounded first; ties go to the lower bucket. Values that are
    not numeric are returned unchanged.

    Args:
        value: Raw value (int, float or numeric string)
        buckets: Allowed values

    Returns:
        Closest bucket, or the original value if it is not numeric
    """
    number = _to_number(value)
    if number is None:
        return value
    number = round(number)
    return min(buckets, key=lambda bucket: (abs(bucket - number), bucket))


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip().replace("_", ""))
        except ValueError:
            return None
    return None


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _drop_empty(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _drop_empty(value)
        elif isinstance(value, list):
            value = [item for item in value if not _is_empty(item)]
        if not _is_empty(value):
            cleaned[key] = value
    return cleaned


class FilterNormalizer:
    """
    Normalizes a parsed completion into the shape the strict model expects.

    Repairs are limited to what the field rules define: bucket snapping,
    year clamping, zip prefix truncation, de-duplication, omission of empty
    values and the location exclusivity policy (explicit location wins over
    radius search). Values that cannot be repaired, such as unknown country
    codes, are left for the validator to reject.
    """

    def __init__(self, field_constraints: Dict[str, Dict[str, Any]]):
        """
        Initialize normalizer.

        Args:
            field_constraints: Constraint table (field_path -> field_info)
        """
        self.field_constraints = field_constraints
        self.known_keys: Dict[str, set] = {"": set()}
        for field_path in field_constraints:
            parent, _, name = field_path.rpartition(".")
            self.known_keys.setdefault(parent, set()).add(name)

    def normalize(self, raw_filter: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalize a parsed filter.

        Args:
            raw_filter: JSON object parsed from the completion

        Returns:
            New, normalized filter dictionary
        """
        data = self._drop_unknown(copy.deepcopy(raw_filter), "")

        for field_path in get_leaf_fields(self.field_constraints):
            field_info = self.field_constraints[field_path]
            value = self._get(data, field_path)
            if value is None:
                continue
            self._set(data, field_path, self._normalize_value(value, field_info))

        self._normalize_ranges(data)
        data = _drop_empty(data)
        data = self._apply_location_policy(data)

        if data:
            for field_path, field_info in self.field_constraints.items():
                if field_info.get("type") == "object" and field_info.get("required"):
                    if self._get(data, field_path) is None:
                        self._set(data, field_path, {})
        return data

    def _drop_unknown(self, data: Dict[str, Any], path: str) -> Dict[str, Any]:
        allowed = self.known_keys.get(path, set())
        cleaned = {}
        for key, value in data.items():
            full_path = f"{path}.{key}" if path else key
            if key not in allowed:
                logger.warning("Dropping unknown filter field '%s'", full_path)
                continue
            if isinstance(value, dict) and full_path in self.known_keys:
                value = self._drop_unknown(value, full_path)
            cleaned[key] = value
        return cleaned

    def _normalize_value(self, value: Any, field_info: Dict[str, Any]) -> Any:
        field_type = field_info.get("type")

        if field_type == "array":
            return self._normalize_array(value, field_info)
        if field_type == "integer" and field_info.get("snap") and field_info.get("values"):
            return snap_to_bucket(value, field_info["values"])
        if field_type == "year":
            return self._normalize_year(value, field_info["minimum"], field_info["maximum"])
        if field_type == "string":
            if isinstance(value, (int, str)) and not isinstance(value, bool):
                value = str(value).strip()
                if field_info.get("max_length") is not None:
                    value = value[:field_info["max_length"]]
        return value

    def _normalize_array(self, value: Any, field_info: Dict[str, Any]) -> Any:
        if not isinstance(value, list):
            value = [value]

        enum_type = field_info.get("enum")
        items = []
        for item in value:
            if isinstance(item, str):
                item = item.strip()
                if field_info.get("item_type") == "enum" and enum_type is None:
                    item = item.upper()
            if enum_type is not None:
                item = self._enum_code(item, enum_type)
            if _is_empty(item) or item in items:
                continue
            items.append(item)
        return items

    @staticmethod
    def _enum_code(item: Any, enum_type: type[Enum]) -> Any:
        """Map a member name or numeric string to the enum code."""
        if isinstance(item, str):
            if item.upper() in enum_type.__members__:
                return enum_type.__members__[item.upper()].value
            if item.lstrip("-").isdigit():
                return int(item)
        if isinstance(item, float) and item.is_integer():
            return int(item)
        return item

    @staticmethod
    def _normalize_year(value: Any, minimum: int, maximum: int) -> Any:
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, str):
            match = _YEAR_PREFIX_RE.match(value)
            if not match:
                return value
            value = int(match.group(1))
        if isinstance(value, int):
            return str(min(max(value, minimum), maximum))
        return value

    def _normalize_ranges(self, data: Dict[str, Any]) -> None:
        vehicle = data.get("vehicleSearchQuery")
        if not isinstance(vehicle, dict):
            return

        ez_from, ez_to = vehicle.get("ezFrom"), vehicle.get("ezTo")
        if isinstance(ez_from, str) and isinstance(ez_to, str) and ez_from.isdigit() and ez_to.isdigit():
            if int(ez_to) < int(ez_from):
                vehicle["ezTo"] = ez_from

        mileage_from, mileage_to = vehicle.get("mileageFrom"), vehicle.get("mileageTo")
        if isinstance(mileage_from, int) and isinstance(mileage_to, int) and mileage_to < mileage_from:
            vehicle["mileageTo"] = mileage_from

    def _apply_location_policy(self, data: Dict[str, Any]) -> Dict[str, Any]:
        countries = data.get("includeCountries")

        # An unusable zip prefix must not displace a radius search
        if "locationZipCodeQuery" in data and not (isinstance(countries, list) and len(countries) == 1):
            logger.info("Dropping locationZipCodeQuery: requires exactly one country")
            del data["locationZipCodeQuery"]

        has_location = bool(countries) or "locationZipCodeQuery" in data
        if has_location and "distance" in data:
            logger.info("Dropping distance: includeCountries/locationZipCodeQuery take precedence")
            del data["distance"]

        return data

    @staticmethod
    def _get(data: Dict[str, Any], field_path: str) -> Any:
        current: Any = data
        for key in field_path.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        return current

    @staticmethod
    def _set(data: Dict[str, Any], field_path: str, value: Any) -> None:
        keys = field_path.split(".")
        current = data
        for key in keys[:-1]:
            current = current.setdefault(key, {})
            if not isinstance(current, dict):
                return
        current[keys[-1]] = value
