from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health, prices, swap
from .config import settings
from .core.swap.errors import SwapError
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

API_TITLE = "Gaia Swap API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Multi-DEX quote aggregation and swap transaction building for Solana"


async def swap_error_handler(request: Request, exc: SwapError) -> JSONResponse:
    """Render every quote/swap failure as ``{error, code}`` with its own status."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def create_app() -> FastAPI:
    application = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # The wallet dashboard is served from another origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)
    application.add_exception_handler(SwapError, swap_error_handler)

    application.include_router(health.router, tags=["Health"])
    application.include_router(swap.router, tags=["Swap"])
    application.include_router(prices.router, tags=["Prices"])

    @application.get("/")
    async def root():
        """Service info"""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "endpoints": ["/quote", "/swap", "/price/{asset}", "/market/sol", "/tokens/search"],
            "docs": "/docs",
            "health": "/healthz",
        }

    return application


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gaia.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
