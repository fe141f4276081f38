import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from makeitsimple.adapters.base import BaseModelAdapter
from makeitsimple.adapters.factory import build_adapter
from makeitsimple.config import Settings, get_settings
from makeitsimple.errors import ConfigurationError, ProviderError, ValidationError
from makeitsimple.models.api import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    ExplainRequest,
    ExplainResponse,
    SummarizeRequest,
    SummarizeResponse,
)
from makeitsimple.services.proxy import ProxyService
from makeitsimple.services.retry import RetryPolicy

logger = logging.getLogger("makeitsimple")

RATE_LIMITED_MESSAGE = "AI is receiving too many requests. Please try again in a moment."
FAILURE_MESSAGES = {
    "summarize": "Failed to generate summary",
    "explain": "Failed to generate explanation",
    "chat": "Failed to generate answer",
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def get_proxy_service(request: Request) -> ProxyService:
    return request.app.state.proxy_service


# ─── AI Routes ───────────────────────────────────────────

router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)

@router.post("/summarize", response_model=SummarizeResponse)
async def summarize_endpoint(
    body: Optional[SummarizeRequest] = None,
    service: ProxyService = Depends(get_proxy_service),
):
    body = body or SummarizeRequest()
    summary = await service.summarize(body.text)
    return SummarizeResponse(summary=summary)

@router.post("/explain", response_model=ExplainResponse)
async def explain_endpoint(
    body: Optional[ExplainRequest] = None,
    service: ProxyService = Depends(get_proxy_service),
):
    body = body or ExplainRequest()
    explanation = await service.explain(body.text)
    return ExplainResponse(explanation=explanation)

@router.post("/chat", response_model=ChatResponse)
async def chat_endpoint(
    body: Optional[ChatRequest] = None,
    service: ProxyService = Depends(get_proxy_service),
):
    body = body or ChatRequest()
    answer = await service.chat(body.question, body.context)
    return ChatResponse(answer=answer)


# ─── Error Mapping ───────────────────────────────────────

async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Rejected request on {request.url.path}: missing {exc.field} field")
    return JSONResponse(status_code=400, content={"error": str(exc)})

async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed body on {request.url.path}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})

async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=500, content={"error": str(exc)})

async def provider_error_handler(request: Request, exc: ProviderError):
    # Raw provider payloads stay in the server log.
    if exc.status == 429:
        return JSONResponse(status_code=429, content={"error": RATE_LIMITED_MESSAGE})
    message = FAILURE_MESSAGES.get(exc.operation or "", "Failed to generate response")
    return JSONResponse(status_code=502, content={"error": message})

async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Server error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# ─── Application Factory ─────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    adapter: Optional[BaseModelAdapter] = None,
) -> FastAPI:
    """
    Build the proxy application.
    `adapter` defaults to the one configured by `settings`; tests inject stubs.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    if adapter is None:
        adapter = build_adapter(settings)

    proxy_service = ProxyService(
        adapter,
        policy=RetryPolicy.from_settings(settings),
        provider_name=settings.AI_PROVIDER,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Shutdown
        if adapter is not None:
            await adapter.aclose()

    app = FastAPI(
        title="MakeItSimple Server",
        description="Summarize, explain and answer questions about page text through a generative-language provider.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.proxy_service = proxy_service

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid request body"})
            if size > settings.MAX_BODY_BYTES:
                logger.info(f"Rejected {size}-byte body on {request.url.path}")
                return JSONResponse(status_code=413, content={"error": "Request body too large"})
        return await call_next(request)

    # Added last so CORS headers also wrap the 413 response.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)

    @app.get("/")
    async def root():
        return {"message": "MakeItSimple Server is running!"}

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


# Run with: uvicorn makeitsimple.main:create_app --factory
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info(f"MakeItSimple server listening on port {settings.PORT}")
    uvicorn.run("makeitsimple.main:create_app", factory=True, host=settings.HOST, port=settings.PORT)
