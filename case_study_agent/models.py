from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ChatRequest(BaseModel):
    message: str
    conversation_history: Optional[List[dict]] = None


class ChatResponse(BaseModel):
    type: str = "final_result"
    message: str
    provider: Optional[str] = None


class GeneratePDFRequest(BaseModel):
    title: str
    content: str


class GeneratePDFResponse(BaseModel):
    status: str
    pdf_url: str


class SearchRequest(BaseModel):
    query: str
    n_results: int = Field(default=5, ge=1, le=20)


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]
    raw: Optional[Any] = None


class SendEmailRequest(BaseModel):
    recipient: str
    subject: str
    body: str


class ToolStatusResponse(BaseModel):
    status: str
    details: Optional[Any] = None
