"""
HTTP API - the sandbox run contract and the assistant proxy.

Routes:
- POST /api/run       run one submission, respond with the result or an error
- GET  /api/run       describe the expected request body
- GET  /api/languages list supported language ids
- POST /api/chat      stream an assistant reply as plain text
"""

from typing import Iterator, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from loguru import logger
from openai import OpenAIError

from codebox.config import ConfigError
from codebox.llm.openai_client import AssistantClient, get_assistant_client
from codebox.sandbox import (
    ExecutionRequest,
    error_response,
    run_sandbox,
    supported_languages,
)
from codebox.sandbox.launcher import IsolationLauncher
from codebox.sandbox.supervisor import LIMIT_SECONDS
from codebox.schemas import ChatRequest, ErrorResponse, RunResponse


RUN_USAGE = "POST { language, code, stdin? } to this endpoint."


def create_app(
    launcher: Optional[IsolationLauncher] = None,
    assistant: Optional[AssistantClient] = None,
    deadline: float = LIMIT_SECONDS,
    workspace_root: Optional[str] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        launcher: Isolation launcher; built from config on first run when omitted
        assistant: Assistant client; built from config on first chat when omitted
        deadline: Wall-clock limit per run in seconds
        workspace_root: Parent directory for workspaces
    """
    app = FastAPI(title="codebox", description="Run untrusted code in isolated sandboxes")
    app.state.launcher = launcher
    app.state.assistant = assistant
    app.state.deadline = deadline
    app.state.workspace_root = workspace_root

    @app.post("/api/run")
    async def run_code(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            return _error(400, "Request body must be JSON")
        if not isinstance(payload, dict):
            return _error(400, "Request body must be a JSON object")

        try:
            # Validation happens before anything is allocated
            submission = ExecutionRequest.from_payload(payload)
            result = await run_sandbox(
                submission,
                launcher=app.state.launcher,
                deadline=app.state.deadline,
                workspace_root=app.state.workspace_root,
            )
        except Exception as e:
            return _error(*error_response(e))

        return JSONResponse(RunResponse.from_result(result).model_dump(by_alias=True))

    @app.get("/api/run")
    async def run_usage():
        return PlainTextResponse(RUN_USAGE)

    @app.get("/api/languages")
    async def languages():
        return {"languages": supported_languages()}

    @app.post("/api/chat")
    async def chat(request: Request):
        try:
            body = ChatRequest.model_validate(await request.json())
            client = app.state.assistant or get_assistant_client()
            history = [turn.model_dump() for turn in body.messages]
            deltas = await run_in_threadpool(client.stream_text, history)
        except (ValueError, ConfigError, OpenAIError) as e:
            logger.warning("Assistant request failed: {}", e)
            return PlainTextResponse(f"[error] {e}", status_code=400)

        return StreamingResponse(
            _guard_stream(deltas),
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-cache, no-transform"},
        )

    return app


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status)


def _guard_stream(deltas: Iterator[str]) -> Iterator[str]:
    """Append an error marker instead of breaking the response mid-stream."""
    try:
        for delta in deltas:
            yield delta
    except OpenAIError as e:
        logger.warning("Assistant stream failed: {}", e)
        yield f"\n\n[error] {e}"


app = create_app()
