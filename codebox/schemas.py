"""
Pydantic schemas for the HTTP contract.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from codebox.sandbox.models import ExecutionResult


class RunResponse(BaseModel):
    """Result of one sandboxed run."""
    model_config = ConfigDict(populate_by_name=True)

    exit_code: int = Field(..., alias="exitCode", description="Program exit code; 137 when force-killed")
    stdout: str = Field(default="", description="Captured standard output")
    stderr: str = Field(default="", description="Captured standard error")
    timed_out: bool = Field(
        default=False,
        alias="timedOut",
        description="Killed by the deadline without producing any output",
    )

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "RunResponse":
        return cls(
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            timed_out=result.timed_out,
        )


class ErrorResponse(BaseModel):
    """Structured error returned instead of a run result."""
    error: str = Field(..., description="What went wrong")


class ChatTurn(BaseModel):
    """A single turn in a conversation."""
    role: Literal["user", "assistant"] = Field(..., description="Role of the speaker")
    content: str = Field(..., description="Message content")


class ChatRequest(BaseModel):
    """Conversation forwarded to the assistant."""
    messages: List[ChatTurn] = Field(default_factory=list, description="Conversation history")
