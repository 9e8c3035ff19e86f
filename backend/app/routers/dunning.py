"""Dunning API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.auth import get_current_organization
from app.core.database import get_db
from app.models.dunning_email_template import DunningEmailType
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.dunning import (
    DunningAttemptResponse,
    DunningAttemptResultResponse,
    DunningConfigResponse,
    DunningConfigUpdate,
    DunningEmailTemplateResponse,
    DunningEmailTemplateUpdate,
    DunningStatsResponse,
    InvoiceInDunningResponse,
    InvoicesInDunningPage,
    StopDunningRequest,
)
from app.services.dunning_config_service import DunningConfigService
from app.services.dunning_service import DunningService
from app.tasks import enqueue_start_dunning

router = APIRouter()


@router.get(
    "/config",
    response_model=DunningConfigResponse,
    summary="Get dunning configuration",
    description="Return the stored configuration, or the defaults when none is stored.",
)
async def get_dunning_config(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningConfigResponse:
    config = DunningConfigService(db).get_config(organization_id)
    return DunningConfigResponse.model_validate(config)


@router.put(
    "/config",
    response_model=DunningConfigResponse,
    summary="Update dunning configuration",
    responses={422: {"description": "Validation error"}},
)
async def update_dunning_config(
    data: DunningConfigUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningConfigResponse:
    """Partially update the configuration, creating it from defaults if needed."""
    config = DunningConfigService(db).upsert_config(organization_id, data)
    return DunningConfigResponse.model_validate(config)


@router.delete(
    "/config",
    status_code=204,
    summary="Reset dunning configuration",
    responses={404: {"description": "Dunning config not found"}},
)
async def delete_dunning_config(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Response:
    if not DunningConfigService(db).delete_config(organization_id):
        raise HTTPException(status_code=404, detail="Dunning config not found")
    return Response(status_code=204)


@router.get(
    "/invoices",
    response_model=InvoicesInDunningPage,
    summary="List invoices in dunning",
)
async def list_invoices_in_dunning(
    limit: int = Query(default=20, ge=1, le=100),
    cursor: UUID | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> InvoicesInDunningPage:
    """List invoices with an active dunning episode, most recently started first."""
    items, has_more, next_cursor = DunningService(db).get_invoices_in_dunning(
        organization_id, limit=limit, cursor=cursor
    )
    return InvoicesInDunningPage(
        data=[InvoiceInDunningResponse.model_validate(invoice) for invoice in items],
        has_more=has_more,
        next_cursor=next_cursor,
    )


@router.get(
    "/invoices/{invoice_id}/attempts",
    response_model=list[DunningAttemptResponse],
    summary="List dunning attempts for an invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def list_dunning_attempts(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[DunningAttemptResponse]:
    try:
        attempts = DunningService(db).get_attempts(organization_id, invoice_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return [DunningAttemptResponse.model_validate(attempt) for attempt in attempts]


@router.post(
    "/invoices/{invoice_id}/retry",
    response_model=DunningAttemptResultResponse,
    summary="Retry payment now",
    responses={404: {"description": "Invoice not found"}},
)
async def retry_invoice_payment(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningAttemptResultResponse:
    """Charge the invoice immediately, outside the retry schedule."""
    try:
        result = await DunningService(db).trigger_manual_retry(organization_id, invoice_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return DunningAttemptResultResponse.model_validate(result, from_attributes=True)


@router.post(
    "/invoices/{invoice_id}/stop",
    status_code=204,
    summary="Stop dunning",
    responses={404: {"description": "Invoice not found"}},
)
async def stop_invoice_dunning(
    invoice_id: UUID,
    data: StopDunningRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Response:
    try:
        await DunningService(db).stop_dunning(organization_id, invoice_id, data.reason)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return Response(status_code=204)


@router.post(
    "/invoices/{invoice_id}/start",
    status_code=202,
    summary="Enqueue dunning start",
    description="Signal a failed payment; a worker opens the dunning episode.",
    responses={404: {"description": "Invoice not found"}},
)
async def start_invoice_dunning(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> dict[str, str]:
    if not InvoiceRepository(db).get_by_id(invoice_id, organization_id):
        raise HTTPException(status_code=404, detail="Invoice not found")
    job = await enqueue_start_dunning(organization_id, invoice_id)
    return {"job_id": job.job_id}


@router.get(
    "/stats",
    response_model=DunningStatsResponse,
    summary="Get dunning statistics",
)
async def get_dunning_stats(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningStatsResponse:
    return DunningService(db).get_dunning_stats(organization_id)


@router.get(
    "/email-templates",
    response_model=list[DunningEmailTemplateResponse],
    summary="List dunning email templates",
)
async def list_email_templates(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[DunningEmailTemplateResponse]:
    templates = DunningConfigService(db).get_email_templates(organization_id)
    return [DunningEmailTemplateResponse.model_validate(t, from_attributes=True) for t in templates]


@router.get(
    "/email-templates/{email_type}",
    response_model=DunningEmailTemplateResponse,
    summary="Get dunning email template",
    responses={422: {"description": "Unknown email type"}},
)
async def get_email_template(
    email_type: DunningEmailType,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningEmailTemplateResponse:
    template = DunningConfigService(db).get_email_template(organization_id, email_type)
    return DunningEmailTemplateResponse.model_validate(template, from_attributes=True)


@router.put(
    "/email-templates/{email_type}",
    response_model=DunningEmailTemplateResponse,
    summary="Customize dunning email template",
    responses={422: {"description": "Validation error"}},
)
async def update_email_template(
    email_type: DunningEmailType,
    data: DunningEmailTemplateUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> DunningEmailTemplateResponse:
    template = DunningConfigService(db).update_email_template(organization_id, email_type, data)
    return DunningEmailTemplateResponse.model_validate(template, from_attributes=True)


@router.delete(
    "/email-templates/{email_type}",
    status_code=204,
    summary="Reset dunning email template",
    responses={422: {"description": "Unknown email type"}},
)
async def reset_email_template(
    email_type: DunningEmailType,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Response:
    DunningConfigService(db).reset_email_template(organization_id, email_type)
    return Response(status_code=204)
