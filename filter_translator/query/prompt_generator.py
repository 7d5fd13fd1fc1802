"""
Generate system prompts for auction filter extraction.
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional

from filter_translator.schema.constraints import get_leaf_fields


class PromptGenerator:
    """
    Generates the system prompt for LLM filter extraction.

    The prompt embeds the JSON schema of the strict filter model and, rendered
    independently from the constraint table, one rule line per field.
    """

    def __init__(
        self,
        field_constraints: Dict[str, Dict[str, Any]],
        json_schema: Dict[str, Any],
        today: Optional[date] = None,
    ):
        """
        Initialize prompt generator.

        Args:
            field_constraints: Constraint table (field_path -> field_info)
            json_schema: JSON schema of the strict filter model
            today: Date stated in the prompt (defaults to date.today())
        """
        self.field_constraints = field_constraints
        self.json_schema = json_schema
        self.today = today or date.today()

    def generate_system_prompt(self) -> str:
        """
        Generate the system prompt for the LLM.

        Returns:
            System prompt string with schema, field rules and output rules
        """
        return f"""
Today is {self.today.isoformat()}

### 1. Your Goal
Based on the schema for AuctionFilter, generate a JSON object that matches the AuctionFilter schema. The schema represents a user query searching for vehicles in auctions.

### 2. AuctionFilter Schema
```json
{json.dumps(self.json_schema, indent=4)}
```

### 3. Field Rules
Pay extra attention to the rules of each field, they describe how you should generate the final JSON.

{self.render_field_rules()}

### 4. Critical Rules
- Do not create fields that are not part of the schema.
- Respect all the constraints defined in the description of each field.
- If the value passed to a field is either too high or too low, normalize it to the closest allowed value.
- If any field is an empty array, an empty string or null, remove it from the final JSON.
- If the user asks for opinions, or the request is not a vehicle search, return an empty JSON object: {{}}

### 5. Your Task
After reading the user query, output **only** the corresponding JSON object. No extra explanation.
"""

    def render_field_rules(self) -> str:
        """Render one bullet line per leaf field of the constraint table."""
        lines: List[str] = []
        for field_path in get_leaf_fields(self.field_constraints):
            field_info = self.field_constraints[field_path]
            lines.append(
                f"- `{field_path}` ({self._describe_type(field_info)}): "
                f"{field_info.get('description', '')}"
            )
        return "\n".join(lines)

    @staticmethod
    def _describe_type(field_info: Dict[str, Any]) -> str:
        """Short type label, e.g. `array of enum, at most 7 items`."""
        field_type = field_info.get("type")
        parts = []

        if field_type == "array":
            parts.append(f"array of {field_info.get('item_type', 'string')}")
            if field_info.get("max_items") is not None:
                parts.append(f"at most {field_info['max_items']} items")
            if field_info.get("unique_items"):
                parts.append("distinct items")
        elif field_type == "year":
            parts.append(
                f"year string YYYY, {field_info['minimum']} to {field_info['maximum']}"
            )
        elif field_type == "string" and field_info.get("max_length") is not None:
            parts.append(f"string, at most {field_info['max_length']} characters")
        else:
            parts.append(str(field_type))

        if field_info.get("snap"):
            parts.append("snapped to the closest allowed value")

        return ", ".join(parts)
