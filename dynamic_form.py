"""
Dynamic form engine: renders a FormSchema into typed control descriptors,
collects values and validates them before handing them to a submit
callback.

The rendered output is plain data (lists/dicts) so any front end can draw
it. Validation runs synchronously; the submit callback is only awaited
when no field has an error.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from form_schema_service import FormField, FormSchema, group_fields_by_category

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# E.164: leading "+" is mandatory
PHONE_RE = re.compile(r"^\+[1-9]\d{1,14}$")

NUMERIC_TYPES = ("number", "integer")


@dataclass
class FormSubmitResult:
    submitted: bool
    errors: Dict[str, str] = field(default_factory=dict)
    failed: bool = False
    result: Any = None
    exception: Optional[BaseException] = None


def _input_type(field_type: str) -> str:
    if field_type == "email":
        return "email"
    if field_type == "phone":
        return "tel"
    return "text"


def render_control(f: FormField) -> Dict[str, Any]:
    """Describe the input control for one field"""
    control = {
        "field_key": f.field_key,
        "label": f.label,
        "required": f.required,
        "description": f.description,
        "placeholder": f.example,
    }

    # upload wins over the declared type
    if f.upload:
        control.update(control="file", input_type="file")
    elif f.type == "enum":
        options = [{"value": "", "label": f"Select {f.label}"}]
        options += [{"value": o, "label": o} for o in (f.options or [])]
        control.update(control="select", options=options)
    elif f.type == "array":
        control.update(control="checkbox_group", options=list(f.options or []))
    elif f.type == "date":
        control.update(control="input", input_type="date")
    elif f.type in NUMERIC_TYPES:
        control.update(control="input", input_type="number", step="1" if f.type == "integer" else "0.01")
    else:
        control.update(control="input", input_type=_input_type(f.type))
    return control


def _parse_number(field_type: str, raw: Any) -> Optional[float]:
    """Parsed numeric value, or None when `raw` is not a finite number of the field's kind"""
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    if field_type == "integer" and not isinstance(raw, float):
        try:
            return int(raw)
        except (TypeError, ValueError):
            pass
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(value):
        return None
    if field_type == "integer":
        # "12.0" is an integer, "12.5" is not
        return int(value) if value.is_integer() else None
    return value


class DynamicForm:

    def __init__(self, schema: FormSchema):
        self.schema = schema
        self.fields: Dict[str, FormField] = {f.field_key: f for f in schema.fields}
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}

    @property
    def title(self) -> str:
        return f"{self.schema.actor.replace('_', ' ')} Verification Form"

    def render(self) -> List[Dict[str, Any]]:
        """Controls grouped by category, in schema order"""
        groups = []
        for category, fields in group_fields_by_category(self.schema.fields).items():
            groups.append({
                "category": category,
                "title": category.replace(":", " - "),
                "controls": [render_control(f) for f in fields],
            })
        return groups

    # ==================== Value collection ====================

    def set_value(self, field_key: str, value: Any) -> None:
        self.values[field_key] = value
        self.errors.pop(field_key, None)

    def set_number(self, field_key: str, raw: Any) -> None:
        f = self.fields.get(field_key)
        field_type = f.type if f else "number"
        self.set_value(field_key, _parse_number(field_type, raw))

    def toggle_option(self, field_key: str, option: str, checked: bool) -> None:
        current = list(self.values.get(field_key) or [])
        if checked and option not in current:
            current.append(option)
        elif not checked:
            current = [o for o in current if o != option]
        self.set_value(field_key, current)

    def attach_file(self, field_key: str, handle: Any) -> None:
        # the handle is kept as-is, never serialized here
        self.set_value(field_key, handle)

    def fill(self, values: Dict[str, Any]) -> None:
        """Apply a whole mapping, routing schema fields through their typed setter"""
        for key, value in values.items():
            f = self.fields.get(key)
            if f is not None and not f.upload and f.type in NUMERIC_TYPES:
                self.set_number(key, value)
            elif f is not None and not f.upload and f.type == "array":
                if value is None:
                    value = []
                elif not isinstance(value, (list, tuple)):
                    value = [value]
                self.set_value(key, list(value))
            else:
                self.set_value(key, value)

    # ==================== Validation ====================

    def validate(self) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for f in self.schema.fields:
            value = self.values.get(f.field_key)

            if f.required and (value is None or value == ""):
                errors[f.field_key] = f"{f.label} is required"

            if f.type == "email" and value:
                if not EMAIL_RE.match(str(value)):
                    errors[f.field_key] = "Invalid email format"

            if f.type == "phone" and value:
                if not PHONE_RE.match(str(value)):
                    errors[f.field_key] = "Invalid phone format (use E.164 format)"

        self.errors = errors
        return errors

    async def submit(self, callback: Callable[[Dict[str, Any]], Awaitable[Any]]) -> FormSubmitResult:
        errors = self.validate()
        if errors:
            return FormSubmitResult(submitted=False, errors=dict(errors))

        try:
            result = await callback(dict(self.values))
        except Exception as e:
            log.error(f"Form submission for {self.schema.actor} failed: {e}")
            return FormSubmitResult(submitted=False, failed=True, exception=e)
        return FormSubmitResult(submitted=True, result=result)
