"""
Warmup API endpoints
"""
import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from core.config import get_settings
from core.warmup import (
    FixedDeadline,
    WarmupConfigurationError,
    WarmupError,
    WarmupTarget,
)
from services.warmup_service import WarmupService
from utils.auth import verify_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/warmup", tags=["warmup"])


class WarmupTargetModel(BaseModel):
    """Function to keep warm"""
    name: str = Field(..., min_length=1, description="Function name")
    alias: Optional[str] = Field(None, description="Alias or version to invoke")
    strategy: Optional[str] = Field(None, description="Warmup strategy name")
    invocation_count: int = Field(0, description="Invocation count override")
    invocation_data: Optional[str] = Field(None, description="Request payload")


class WarmupRequest(BaseModel):
    """Warmup run request"""
    deadline_millis: Optional[int] = Field(None, gt=0, description="Time budget in milliseconds")
    targets: Optional[List[WarmupTargetModel]] = Field(
        None, description="Functions to warm up (configured functions if omitted)"
    )


class WarmupResponse(BaseModel):
    """Warmup run summary"""
    deadline_millis: int
    functions: int
    invocations: int
    failures: int
    duration_ms: float
    strategies: Dict[str, int]


class StrategiesResponse(BaseModel):
    """Registered warmup strategies"""
    strategies: List[str]
    default: Optional[str]


def get_warmup_service(request: Request) -> WarmupService:
    """Get the warmup service attached to the application"""
    service = getattr(request.app.state, "warmup_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Warmup service is not available")
    return service


@router.post("", response_model=WarmupResponse)
async def run_warmup(
    request: WarmupRequest,
    service: WarmupService = Depends(get_warmup_service),
    api_key: str = Depends(verify_api_key),
):
    """Run one warmup round"""
    deadline = FixedDeadline(request.deadline_millis or get_settings().default_deadline_millis)

    try:
        targets = None
        if request.targets is not None:
            targets = [WarmupTarget(**target.model_dump()) for target in request.targets]

        report = await asyncio.to_thread(service.run, deadline, targets)
        return report.to_dict()

    except WarmupConfigurationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except WarmupError as e:
        raise HTTPException(status_code=502, detail=e.message)


@router.get("/strategies", response_model=StrategiesResponse)
async def list_strategies(
    service: WarmupService = Depends(get_warmup_service),
    api_key: str = Depends(verify_api_key),
):
    """List registered warmup strategies"""
    registry = service.router.registry
    return {
        "strategies": registry.names(),
        "default": service.router.default_strategy,
    }


@router.get("/targets")
async def list_targets(
    service: WarmupService = Depends(get_warmup_service),
    api_key: str = Depends(verify_api_key),
):
    """List configured functions to warm up"""
    return {"targets": [target.to_dict() for target in service.targets]}
