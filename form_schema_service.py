"""
Form Schema Service - loads the field definitions that drive the dynamic
verification forms.

A schema document lists one field per row/item with the columns:

    actor, field_key, label, type, required, description, example,
    options, upload, category

`required` and `upload` are true only for the literal string "True".
`options` is a pipe-separated list ("a|b|c"). The actor of the first row
names the schema.
"""

import csv
import io
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from exceptions import SchemaLoadError

log = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

# Verification kind -> schema document name
SCHEMA_DOCUMENTS = {
    "PERSON": "personas.csv",
    "INSTITUTION": "institutions.csv",
}


@dataclass
class FormField:
    field_key: str
    label: str
    type: str = "text"
    required: bool = False
    description: str = ""
    example: str = ""
    options: Optional[List[str]] = None
    upload: bool = False
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FormSchema:
    actor: str
    fields: List[FormField] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor,
            "fields": [f.to_dict() for f in self.fields],
            "categories": list(self.categories),
        }


def _is_true(value: Any) -> bool:
    return value is True or value == "True"


def _split_options(value: Any) -> Optional[List[str]]:
    if isinstance(value, list):
        return [str(v) for v in value] or None
    if not value:
        return None
    return str(value).split("|")


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def build_schema(rows: List[Dict[str, Any]], actor: Optional[str] = None) -> FormSchema:
    """Turn header->value rows into a FormSchema"""
    if not rows:
        raise SchemaLoadError("Schema document has no field rows")

    fields: List[FormField] = []
    categories: List[str] = []

    for row in rows:
        field_key = _clean(row.get("field_key"))
        if not field_key:
            raise SchemaLoadError("Schema row is missing field_key")

        category = _clean(row.get("category"))
        fields.append(FormField(
            field_key=field_key,
            label=_clean(row.get("label")) or field_key,
            type=_clean(row.get("type")) or "text",
            required=_is_true(row.get("required")),
            description=_clean(row.get("description")),
            example=_clean(row.get("example")),
            options=_split_options(row.get("options")),
            upload=_is_true(row.get("upload")),
            category=category,
        ))
        if category not in categories:
            categories.append(category)

    if actor is None:
        actor = _clean(rows[0].get("actor"))
    return FormSchema(actor=actor, fields=fields, categories=categories)


def group_fields_by_category(fields: List[FormField]) -> Dict[str, List[FormField]]:
    grouped: Dict[str, List[FormField]] = {}
    for f in fields:
        grouped.setdefault(f.category, []).append(f)
    return grouped


class SchemaLoader(ABC):
    """Fetches a schema document and parses it into a FormSchema"""

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def load(self, source: str) -> FormSchema:
        try:
            text = await self._fetch(source)
            return self.parse(text)
        except Exception as e:
            log.error(f"Error parsing form schema {source}: {e}")
            raise SchemaLoadError("Failed to parse form schema") from e

    async def _fetch(self, source: str) -> str:
        if source.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(source)
                response.raise_for_status()
                return response.text
        return Path(source).read_text(encoding="utf-8")

    @abstractmethod
    def parse(self, text: str) -> FormSchema:
        ...


class CSVSchemaLoader(SchemaLoader):
    """Comma-delimited document with a header row; quoted cells allowed"""

    def parse(self, text: str) -> FormSchema:
        reader = csv.DictReader(io.StringIO(text.strip()))
        if not reader.fieldnames or "field_key" not in [h.strip() for h in reader.fieldnames]:
            raise SchemaLoadError("Schema document is missing its header row")

        rows = []
        for raw in reader:
            row = {(k or "").strip(): v for k, v in raw.items()}
            if not any(_clean(v) for v in row.values()):
                continue
            rows.append(row)
        return build_schema(rows)


class JSONSchemaLoader(SchemaLoader):
    """Either {"actor": ..., "fields": [...]} or a bare list of field objects"""

    def parse(self, text: str) -> FormSchema:
        document = json.loads(text)
        if isinstance(document, dict):
            rows = document.get("fields")
            actor = document.get("actor")
        else:
            rows, actor = document, None
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise SchemaLoadError("Schema document must contain a list of field objects")
        return build_schema(rows, actor=actor)


def loader_for(source: str, **kwargs) -> SchemaLoader:
    """Pick a loader from the document suffix"""
    path = source.split("?", 1)[0].lower()
    if path.endswith(".json"):
        return JSONSchemaLoader(**kwargs)
    return CSVSchemaLoader(**kwargs)


def schema_source_for_kind(kind: str, schema_dir: str) -> str:
    """Location of the schema document for a verification kind"""
    document = SCHEMA_DOCUMENTS.get(kind.upper())
    if document is None:
        raise KeyError(kind)
    if schema_dir.startswith(("http://", "https://")):
        return f"{schema_dir.rstrip('/')}/{document}"
    directory = Path(schema_dir)
    if not directory.is_absolute():
        directory = BASE_DIR / directory
    return str(directory / document)


async def load_schema_for_kind(kind: str, schema_dir: str) -> FormSchema:
    source = schema_source_for_kind(kind, schema_dir)
    return await loader_for(source).load(source)
