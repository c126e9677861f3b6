"""Citation endpoints: validate a source and list approved domains."""

from fastapi import APIRouter

from trust_engine.schemas import (
    ApprovedDomainsResponse,
    CitationValidateRequest,
    CitationValidationResponse,
)
from trust_engine.services.citation_validator import get_approved_domains, validate_citation

router = APIRouter(prefix="/api/citations", tags=["citations"])


@router.post("/validate", response_model=CitationValidationResponse)
async def validate(body: CitationValidateRequest):
    return CitationValidationResponse(**validate_citation(body.citation).to_dict())


@router.get("/domains", response_model=ApprovedDomainsResponse)
async def approved_domains():
    return ApprovedDomainsResponse(domains=get_approved_domains())
