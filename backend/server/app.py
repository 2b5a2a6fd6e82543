"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (text client, live client, interview gateway)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from adapters.live.base import LiveClient
from adapters.live.gemini_live import GeminiLiveClient
from adapters.llm.text import TextGenerationAdapter
from config import AppConfig
from interview.runtime_context import DeviceFactory, SoundDeviceFactory
from observability.logger import log_event
from server.routes import register_routes
from services.career_service import CareerService
from session.gateway import InterviewGateway

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    log_event({
        "event_type": "APP_STARTED",
        "env": app.state.config.env,
        "text_provider": app.state.config.text_provider,
        "live_model": app.state.config.live_model,
    })
    yield
    # Release the mic/speaker/connection of a still-running interview
    await app.state.gateway.shutdown()
    log_event({"event_type": "APP_STOPPED"})


def create_app(
    config: AppConfig | None = None,
    *,
    text_client: Any | None = None,
    live_client: LiveClient | None = None,
    devices: DeviceFactory | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations and fake clients/devices
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    app = FastAPI(title="Career Guidance API", lifespan=_lifespan)

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Clients are created ONCE per process and passed down explicitly
    if text_client is None:
        text_client = build_llm_client(config)
    app.state.text_client = text_client

    app.state.career_service = CareerService(
        text=TextGenerationAdapter(
            client=text_client,
            model=config.text_model,
            provider=config.text_provider,
        )
    )

    if live_client is None:
        live_client = GeminiLiveClient(
            api_key=config.gemini_api_key,
            model=config.live_model,
            url=config.live_url,
        )

    app.state.gateway = InterviewGateway(
        config=config,
        live_client=live_client,
        devices=devices if devices is not None else SoundDeviceFactory(),
    )

    # Routes
    register_routes(app)

    return app


def build_llm_client(config: AppConfig) -> AsyncOpenAI:
    """Build a text client for the provider selected by environment variables."""
    if config.text_provider.lower() == "openai":
        if not config.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable not set")
        return AsyncOpenAI(api_key=config.openai_api_key)

    if not config.gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY environment variable not set")
    return AsyncOpenAI(
        api_key=config.gemini_api_key,
        base_url=GEMINI_OPENAI_BASE_URL,
    )
