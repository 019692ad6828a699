"""Text generation provider status."""

from fastapi import APIRouter

from vhouse_ai.controllers.dependencies import GatewayDep
from vhouse_ai.views.conversations import AIHealthResponse

router = APIRouter(prefix="/ai", tags=["ai"])


@router.get("/health", response_model=AIHealthResponse)
async def ai_health(gateway: GatewayDep) -> AIHealthResponse:
    """Report which providers are configured and currently healthy."""

    status = gateway.health_status()
    return AIHealthResponse(
        service_status=status["service_status"],
        recommended_provider=status["recommended_provider"],
        fallback_available=status["fallback_available"],
    )
