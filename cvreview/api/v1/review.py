import asyncio

from fastapi import APIRouter, File, Form, Header, HTTPException, Request, UploadFile, status

from cvreview.core.config import settings
from cvreview.core.credit_store import InsufficientCredits, get_or_create_profile
from cvreview.core.review_rate_limit import ReviewRateLimitExceeded, enforce_review_rate_limit
from cvreview.core.security import check_api_key, require_user_id
from cvreview.schemas.review import CreditBalanceResponse, ReviewResult
from cvreview.services.review_llm import ReviewLLMError
from cvreview.services.review_service import ReviewAnalysisError, run_review

router = APIRouter()


def _enforce_review_rate_limit(request: Request, user_id: str) -> None:
    try:
        enforce_review_rate_limit(
            caller_key=user_id,
            route_key=request.url.path,
            limit=settings.review_rate_limit,
        )
    except ReviewRateLimitExceeded as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please wait a minute and try again.",
            headers={"Retry-After": str(exc.retry_after_s)},
        ) from exc


async def _read_upload(upload: UploadFile) -> bytes:
    max_bytes = settings.max_upload_mb * 1024 * 1024
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {settings.max_upload_mb} MB.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/review", response_model=ReviewResult)
async def create_review(
    request: Request,
    portfolio: UploadFile | None = File(default=None),
    job_offer_url: str | None = Form(default=None),
    ruthlessness: int = Form(default=5, ge=0, le=10),
    x_user_id: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
):
    check_api_key(x_api_key)
    user_id = require_user_id(x_user_id)
    if portfolio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Portfolio PDF is required.")
    _enforce_review_rate_limit(request, user_id)

    content = await _read_upload(portfolio)
    try:
        return await asyncio.to_thread(
            run_review,
            user_id=user_id,
            portfolio_bytes=content,
            job_offer_url=job_offer_url,
            severity_level=ruthlessness,
        )
    except InsufficientCredits as exc:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Insufficient Credits. You have used all your credits.",
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ReviewAnalysisError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Analysis Failed: {exc}",
        ) from exc
    except ReviewLLMError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/credits", response_model=CreditBalanceResponse)
async def get_credits(
    x_user_id: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
):
    check_api_key(x_api_key)
    user_id = require_user_id(x_user_id)
    profile = get_or_create_profile(user_id)
    return CreditBalanceResponse(
        user_id=profile.user_id,
        tier=profile.tier,
        credits=profile.credits,
        daily_credits_limit=profile.daily_credits_limit,
    )
