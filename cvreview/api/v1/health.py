from fastapi import APIRouter

from cvreview.guardrails.domains import domain_keyword_table

router = APIRouter()

@router.get("/health", summary="Health Check", description="Check the health status of the review service.")
async def health_check():
    return {"status": "healthy", "domains": len(domain_keyword_table())}
