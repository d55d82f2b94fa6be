from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
import logging

from deps import RequestServiceDep, SettingsDep
from dynamic_form import DynamicForm
from exceptions import RequestServiceError, SchemaLoadError
from form_schema_service import FormSchema, SCHEMA_DOCUMENTS, load_schema_for_kind
from schemas import FormSubmit, FormValidationResult, FormValues, SubmitResponse

log = logging.getLogger(__name__)
forms_router = APIRouter(prefix="/forms", tags=["forms"])


async def _load_schema(kind: str, settings) -> FormSchema:
    kind = kind.upper()
    if kind not in SCHEMA_DOCUMENTS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown form kind: {kind}")
    try:
        return await load_schema_for_kind(kind, settings.FORM_SCHEMA_DIR)
    except SchemaLoadError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to parse form schema")


@forms_router.get("/{kind}")
async def get_form(kind: str, settings: SettingsDep):
    """Schema plus rendered, category-grouped controls for PERSON or INSTITUTION"""
    schema = await _load_schema(kind, settings)
    form = DynamicForm(schema)
    return {
        "kind": kind.upper(),
        "title": form.title,
        "schema": schema.to_dict(),
        "groups": form.render(),
    }


@forms_router.post("/{kind}/validate", response_model=FormValidationResult)
async def validate_form(kind: str, body: FormValues, settings: SettingsDep):
    schema = await _load_schema(kind, settings)
    form = DynamicForm(schema)
    form.fill(body.values)
    errors = form.validate()
    return FormValidationResult(valid=not errors, errors=errors)


@forms_router.post("/{kind}/submit")
async def submit_form(kind: str, body: FormSubmit, settings: SettingsDep, service: RequestServiceDep):
    """
    Validate the values against the schema and, when they pass, create a
    verification request of this kind for `address`.
    """
    schema = await _load_schema(kind, settings)
    form = DynamicForm(schema)
    form.fill(body.values)

    async def create_request(values):
        return await service.submit_verification(body.address, kind.upper(), values)

    outcome = await form.submit(create_request)

    if outcome.errors:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": outcome.errors})
    if outcome.failed:
        if isinstance(outcome.exception, RequestServiceError):
            raise HTTPException(status_code=outcome.exception.status_code, detail=outcome.exception.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

    record = outcome.result
    return SubmitResponse(request_id=record.id, status=record.status).model_dump(by_alias=True)
