"""Field constraints and strict model building."""

from filter_translator.schema.constraints import build_field_constraints, get_leaf_fields
from filter_translator.schema.model_builder import ModelBuilder

__all__ = ["build_field_constraints", "get_leaf_fields", "ModelBuilder"]
