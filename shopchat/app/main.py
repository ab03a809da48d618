#!/usr/bin/env python3
"""
Main FastAPI application for the shop chatbot.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Config
from .controller import Controller
from .rate_limit import RateLimiter
from ..data.database import create_tables
from ..schemas.io_models import ChatRequest, ChatResponse
from ..utils.errors import InvalidArgument
from ..utils.logger import get_logger

logger = get_logger(__name__)

RATE_LIMITED_PREFIX = "/chat"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def _server_error(e: Exception) -> JSONResponse:
    """Generic 500; the underlying detail is only exposed in development."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(e) if Config.is_development() else "Something went wrong",
        },
    )


def create_app(controller: Controller = None, rate_limiter: RateLimiter = None, init_db: bool = True) -> FastAPI:
    """
    Build the API.

    Args:
        controller: Chat orchestrator; built from configuration when omitted
        rate_limiter: Per-client limiter for /chat routes
        init_db: Create tables on startup

    Returns:
        Configured FastAPI application
    """
    Config.validate()
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_db:
            create_tables()
        logger.info("Server started (env=%s)", Config.APP_ENV)
        yield

    app = FastAPI(
        title="Shop Chatbot API",
        description="Conversational assistant for product search and order inquiries",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[Config.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller or Controller()
    app.state.rate_limiter = rate_limiter or RateLimiter()

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.url.path.startswith(RATE_LIMITED_PREFIX):
            client_id = request.client.host if request.client else "unknown"
            # the Redis round trip blocks, so keep it off the event loop
            allowed = await run_in_threadpool(app.state.rate_limiter.hit, client_id)
            if not allowed:
                return JSONResponse(
                    status_code=429,
                    content={"error": "Too many requests from this IP, please try again later."},
                )
        return await call_next(request)

    @app.middleware("http")
    async def body_limit(request: Request, call_next):
        length = request.headers.get("content-length")
        if length is not None:
            if not length.isdigit():
                return JSONResponse(status_code=400, content={"error": "Invalid Content-Length header"})
            if int(length) > Config.MAX_REQUEST_BYTES:
                return JSONResponse(status_code=413, content={"error": "Request entity too large"})
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        return JSONResponse(status_code=400, content={"error": f"{field}: {first.get('msg', 'invalid request')}"})

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        return JSONResponse(status_code=404, content={"message": f"The URL {request.url.path} doesn't exist"})

    # Plain `def` routes run in the threadpool, so blocking LLM/DB calls don't stall other turns
    @app.post("/chat", response_model=ChatResponse)
    def chat(request: ChatRequest):
        """Handle one chat turn."""
        try:
            return app.state.controller.handle_chat(request.message, request.conversation_id, request.user_id)
        except InvalidArgument as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except Exception as e:
            logger.exception("Chat error")
            return _server_error(e)

    @app.get("/chat/conversations/{user_id}")
    def get_user_conversations(user_id: str):
        """A user's conversations, newest-updated first."""
        try:
            conversations = app.state.controller.get_conversations(user_id)
        except Exception as e:
            logger.exception("Error fetching conversations")
            return _server_error(e)
        return {"conversations": [c.model_dump(mode="json", exclude={"title_set"}) for c in conversations]}

    @app.get("/chat/history/{conversation_id}")
    def get_conversation_history(conversation_id: str):
        """Messages of a conversation, oldest first."""
        try:
            messages = app.state.controller.get_history(conversation_id)
        except Exception as e:
            logger.exception("Error fetching conversation history")
            return _server_error(e)
        return {"messages": [m.model_dump(mode="json") for m in messages]}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - started,
        }

    return app


if __name__ == "__main__":
    import uvicorn
    Config.debug_print()
    uvicorn.run(create_app(), host="0.0.0.0", port=Config.PORT)
