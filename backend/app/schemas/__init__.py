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

__all__ = [
    "DunningAttemptResponse",
    "DunningAttemptResultResponse",
    "DunningConfigResponse",
    "DunningConfigUpdate",
    "DunningEmailTemplateResponse",
    "DunningEmailTemplateUpdate",
    "DunningStatsResponse",
    "InvoiceInDunningResponse",
    "InvoicesInDunningPage",
    "StopDunningRequest",
]
