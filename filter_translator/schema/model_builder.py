"""
Strict Pydantic model builder for auction filters.

Builds the validator model and its JSON schema from the field-constraint
table in `filter_translator.schema.constraints`.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    create_model,
    model_validator,
)


def _unique_items(values: List[Any]) -> List[Any]:
    if len(set(values)) != len(values):
        raise ValueError("items must be distinct")
    return values


def _year_range(minimum: int, maximum: int) -> Callable[[str], str]:
    def check(value: str) -> str:
        if not minimum <= int(value) <= maximum:
            raise ValueError(f"year must be between {minimum} and {maximum}")
        return value
    return check


def check_location_exclusivity(self):
    """Radius search excludes countries and zip code; zip code needs one country."""
    distance = getattr(self, "distance", None)
    countries = getattr(self, "includeCountries", None) or []
    zip_code = getattr(self, "locationZipCodeQuery", None)

    if distance is not None and distance.radius is not None and (countries or zip_code):
        raise ValueError(
            "distance.radius cannot be combined with includeCountries or locationZipCodeQuery"
        )
    if zip_code and len(countries) != 1:
        raise ValueError("locationZipCodeQuery requires exactly one entry in includeCountries")
    return self


def check_ranges(self):
    """Upper bounds must not be lower than lower bounds."""
    ez_from = getattr(self, "ezFrom", None)
    ez_to = getattr(self, "ezTo", None)
    if ez_from and ez_to and int(ez_to) < int(ez_from):
        raise ValueError("ezTo must not be lower than ezFrom")

    mileage_from = getattr(self, "mileageFrom", None)
    mileage_to = getattr(self, "mileageTo", None)
    if mileage_from is not None and mileage_to is not None and mileage_to.value < mileage_from.value:
        raise ValueError("mileageTo must not be lower than mileageFrom")
    return self


# Cross-field validators, keyed by the path of the model they apply to
DEFAULT_MODEL_VALIDATORS: Dict[str, Dict[str, Callable]] = {
    "": {"check_location_exclusivity": check_location_exclusivity},
    "vehicleSearchQuery": {"check_ranges": check_ranges},
}


class ModelBuilder:
    """
    Builds the strict AuctionFilter model from the constraint table.

    Every generated model forbids unknown keys. Bucketed values become enum
    types, so values outside the allowed lists are rejected.
    """

    def __init__(
        self,
        field_constraints: Dict[str, Dict[str, Any]],
        model_validators: Optional[Dict[str, Dict[str, Callable]]] = None,
    ):
        """
        Initialize model builder.

        Args:
            field_constraints: Constraint table (field_path -> field_info)
            model_validators: Cross-field validators keyed by model path.
                              Defaults to DEFAULT_MODEL_VALIDATORS.
        """
        self.field_constraints = field_constraints
        self.model_validators = (
            DEFAULT_MODEL_VALIDATORS if model_validators is None else model_validators
        )
        self._model_class: Optional[type[BaseModel]] = None
        self._json_schema: Optional[Dict[str, Any]] = None

    def build(self, model_name: str = "AuctionFilter") -> type[BaseModel]:
        """
        Build the strict filter model.

        Args:
            model_name: Name for the generated model class

        Returns:
            Generated Pydantic model class
        """
        if self._model_class is None:
            self._model_class = self._build_pydantic_model(
                self.field_constraints, model_name
            )
        return self._model_class

    def get_json_schema(self) -> Dict[str, Any]:
        """Return the JSON schema of the generated model."""
        if self._json_schema is None:
            self._json_schema = self.build().model_json_schema()
        return self._json_schema

    def _build_pydantic_model(
        self,
        schema: Dict[str, Any],
        model_name: str,
        current_path: str = "",
    ) -> type[BaseModel]:
        """
        Recursively build Pydantic model from the constraint table.

        Args:
            schema: Constraint table or the nested part of it
            model_name: Name for this model/submodel
            current_path: Current field path (for nested objects)

        Returns:
            Pydantic model class
        """
        fields: Dict[str, tuple] = {}

        # Group fields by their parent (for nested objects)
        grouped_fields: Dict[str, Dict[str, Any]] = {}
        direct_fields: Dict[str, Any] = {}

        for field_path, field_info in schema.items():
            if current_path and not field_path.startswith(current_path + "."):
                continue

            relative_path = field_path[len(current_path) + 1:] if current_path else field_path

            if "." in relative_path:
                parent_field = relative_path.split(".")[0]
                grouped_fields.setdefault(parent_field, {})[field_path] = field_info
            else:
                direct_fields[relative_path] = field_info

        for field_name, field_info in direct_fields.items():
            full_field_path = f"{current_path}.{field_name}" if current_path else field_name

            if field_info.get("type") == "object":
                nested_model_name = f"{model_name}_{field_name[0].upper()}{field_name[1:]}"
                py_type = self._build_pydantic_model(
                    grouped_fields.get(field_name, {}),
                    nested_model_name,
                    full_field_path,
                )
            else:
                py_type = self._get_python_type(field_name, model_name, field_info)

            fields[field_name] = self._get_field_definition(py_type, field_info)

        validators = {
            name: model_validator(mode="after")(func)
            for name, func in self.model_validators.get(current_path, {}).items()
        }

        return create_model(  # type: ignore[call-overload]
            model_name,
            __config__=ConfigDict(extra="forbid"),
            __validators__=validators,
            **fields,
        )

    def _get_python_type(
        self, field_name: str, model_name: str, field_info: Dict[str, Any]
    ) -> Any:
        """Map a leaf field info to an annotated Python type."""
        field_type = field_info.get("type")

        if field_type == "array":
            if field_info.get("item_type") == "enum":
                item_type = field_info.get("enum") or self._create_enum_type(
                    field_name, model_name, field_info["values"]
                )
            else:
                item_type = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

            py_type: Any = List[item_type]
            if field_info.get("max_items") is not None:
                py_type = Annotated[py_type, Field(max_length=field_info["max_items"])]
            if field_info.get("unique_items"):
                py_type = Annotated[py_type, AfterValidator(_unique_items)]
            return py_type

        if field_type == "integer":
            if field_info.get("values"):
                return self._create_enum_type(field_name, model_name, field_info["values"])
            return int

        if field_type == "year":
            return Annotated[
                str,
                StringConstraints(pattern=field_info.get("pattern", r"^\d{4}$")),
                AfterValidator(_year_range(field_info["minimum"], field_info["maximum"])),
            ]

        if field_type == "string":
            return Annotated[
                str,
                StringConstraints(
                    min_length=1,
                    max_length=field_info.get("max_length"),
                    pattern=field_info.get("pattern"),
                ),
            ]

        raise ValueError(f"Unsupported field type '{field_type}' for field '{field_name}'")

    def _create_enum_type(
        self, field_name: str, model_name: str, values: List[Any]
    ) -> type[Enum]:
        """Create an Enum type from values."""
        enum_class_name = f"{model_name}_{field_name[0].upper()}{field_name[1:]}Enum"
        enum_members = {}

        for i, value in enumerate(values):
            if isinstance(value, str) and value.isidentifier():
                member_name = value.upper()
            else:
                member_name = f"VALUE_{i}"
            enum_members[member_name] = value

        return Enum(enum_class_name, enum_members)

    def _get_field_definition(self, py_type: Any, field_info: Dict[str, Any]) -> tuple:
        """Get Pydantic field definition (type, Field(...))."""
        description = field_info.get("description")

        if field_info.get("required", False):
            return (py_type, Field(..., description=description))
        return (Optional[py_type], Field(default=None, description=description))
