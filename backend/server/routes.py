"""
Route registration for the career guidance API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Translate service/gateway errors into HTTP status codes
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio

from fastapi import Body, FastAPI, HTTPException, WebSocket

from adapters.llm.text import TextGenerationError
from constants import STATUS_PUSH_INTERVAL_MS
from errors import DeviceUnavailable, LiveConnectionError
from observability.logger import exception_fields, log_event
from server.schemas import (
    AnalysisResult,
    ChatRequest,
    ChatResponse,
    CvRequest,
    CvResponse,
    EvaluationRequest,
    InterviewEvaluation,
    InterviewStartRequest,
    InterviewStatusResponse,
    QuestionsRequest,
    QuestionsResponse,
    RoadmapRequest,
    RoadmapResponse,
    UserProfile,
)
from services.career_service import CareerService
from session.gateway import InterviewGateway


def _upstream_error(operation: str, exc: Exception) -> HTTPException:
    log_event({
        "event_type": "UPSTREAM_ERROR",
        "operation": operation,
        **exception_fields(exc),
    })
    return HTTPException(status_code=502, detail=f"{operation} failed")


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    def career() -> CareerService:
        return app.state.career_service

    def gateway() -> InterviewGateway:
        return app.state.gateway

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Career guidance
    # ------------------------------------------------------------------

    @app.post("/api/assessment/questions", response_model=QuestionsResponse)
    async def assessment_questions(req: QuestionsRequest) -> QuestionsResponse: # pyright: ignore[reportUnusedFunction]
        return QuestionsResponse(questions=await career().get_assessment_questions(req.major))

    @app.post("/api/analysis", response_model=AnalysisResult)
    async def analysis(profile: UserProfile) -> AnalysisResult: # pyright: ignore[reportUnusedFunction]
        try:
            return await career().analyze_profile(profile)
        except TextGenerationError as e:
            raise _upstream_error("analysis", e) from e

    @app.post("/api/roadmap", response_model=RoadmapResponse)
    async def roadmap(req: RoadmapRequest) -> RoadmapResponse: # pyright: ignore[reportUnusedFunction]
        return RoadmapResponse(steps=await career().generate_roadmap(req.profile, req.target_role))

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(req: ChatRequest) -> ChatResponse: # pyright: ignore[reportUnusedFunction]
        try:
            reply = await career().chat_with_advisor(req.history, req.message, req.profile)
        except TextGenerationError as e:
            raise _upstream_error("chat", e) from e
        return ChatResponse(reply=reply)

    @app.post("/api/cv", response_model=CvResponse)
    async def cv(req: CvRequest) -> CvResponse: # pyright: ignore[reportUnusedFunction]
        try:
            markdown = await career().generate_cv(req.profile, req.analysis, req.cv_data)
        except TextGenerationError as e:
            raise _upstream_error("cv", e) from e
        return CvResponse(markdown=markdown)

    # ------------------------------------------------------------------
    # Voice interview
    # ------------------------------------------------------------------

    @app.post("/api/interview/start", response_model=InterviewStatusResponse)
    async def interview_start(req: InterviewStartRequest) -> InterviewStatusResponse: # pyright: ignore[reportUnusedFunction]
        try:
            status = await gateway().start_interview(req.target_role, req.candidate_context)
        except DeviceUnavailable as e:
            log_event({"event_type": "INTERVIEW_START_FAILED", **exception_fields(e)})
            raise HTTPException(status_code=503, detail=str(e)) from e
        except LiveConnectionError as e:
            log_event({"event_type": "INTERVIEW_START_FAILED", **exception_fields(e)})
            raise HTTPException(status_code=502, detail=str(e)) from e
        return InterviewStatusResponse(**status.to_dict())

    @app.post("/api/interview/stop", response_model=InterviewStatusResponse)
    async def interview_stop() -> InterviewStatusResponse: # pyright: ignore[reportUnusedFunction]
        status = await gateway().stop_interview()
        return InterviewStatusResponse(**status.to_dict())

    @app.get("/api/interview/status", response_model=InterviewStatusResponse)
    async def interview_status() -> InterviewStatusResponse: # pyright: ignore[reportUnusedFunction]
        return InterviewStatusResponse(**gateway().status().to_dict())

    @app.post("/api/interview/evaluate", response_model=InterviewEvaluation)
    async def interview_evaluate( # pyright: ignore[reportUnusedFunction]
        req: EvaluationRequest | None = Body(default=None),
    ) -> InterviewEvaluation:
        transcript = req.transcript if req else None
        if not transcript:
            if gateway().is_live():
                raise HTTPException(status_code=409, detail="interview still in progress")
            transcript = gateway().transcript_text()
        if not transcript.strip():
            raise HTTPException(status_code=400, detail="no interview transcript available")

        role = (req.role if req else None) or gateway().last_target_role()
        return await career().evaluate_interview(transcript, role)

    @app.websocket("/ws/interview/status")
    async def interview_status_ws(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """Push the interview status every 100 ms until the client leaves."""
        await ws.accept()

        async def _push() -> None:
            while True:
                await ws.send_json(gateway().status().to_dict())
                await asyncio.sleep(STATUS_PUSH_INTERVAL_MS / 1000.0)

        push = asyncio.create_task(_push())
        try:
            while True:
                msg = await ws.receive()
                if msg["type"] == "websocket.disconnect":
                    break
        finally:
            push.cancel()
            await asyncio.gather(push, return_exceptions=True)
