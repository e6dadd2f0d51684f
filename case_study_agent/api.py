import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, configure_logging, get_settings
from .dependencies import AgentTools, AppSettings, EmailSender, Renderer
from .exceptions import DocumentRenderError
from .models import (
    ChatRequest,
    ChatResponse,
    GeneratePDFRequest,
    GeneratePDFResponse,
    SearchRequest,
    SearchResponse,
    SendEmailRequest,
    ToolStatusResponse,
)
from .chatbot import chat
from .tools.pdf_tool import create_pdf
from .tools.search import SerperClient, search_google
from .tools import build_email_sender, build_retriever, get_all_tools
from .tools.email import send_mail

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    # Missing required configuration fails here, at process start.
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # One retriever and sender per app so their clients and pools are shared.
    retriever = build_retriever(settings)
    email_sender = build_email_sender(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        retriever.close()
        logger.info("Closed case study retriever")

    app = FastAPI(title="Case Study Agent API", version=API_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.retriever = retriever
    app.state.email_sender = email_sender
    app.state.tools = get_all_tools(settings, retriever=retriever, sender=email_sender)

    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {"message": "Case Study Agent API", "version": API_VERSION, "docs": "/docs"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.post("/chat", response_model=ChatResponse)
    async def _chat(
        request: ChatRequest, settings: AppSettings, tools: AgentTools
    ) -> ChatResponse:
        result = await chat(
            request.message,
            settings,
            conversation_history=request.conversation_history,
            tools=tools,
        )
        return ChatResponse(**result)

    @app.post("/generate-pdf", response_model=GeneratePDFResponse)
    def _generate_pdf(request: GeneratePDFRequest, renderer: Renderer) -> GeneratePDFResponse:
        """Render a case study report to PDF."""
        try:
            result = create_pdf(renderer, request.title, request.content)
        except DocumentRenderError as e:
            logger.error(f"PDF generation failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return GeneratePDFResponse(**result)

    @app.post("/search", response_model=SearchResponse)
    async def _search(request: SearchRequest, settings: AppSettings) -> SearchResponse:
        client = SerperClient(api_key=settings.serper_api_key)
        result = await search_google(client, request.query, request.n_results)
        return SearchResponse(**result)

    @app.post("/actions/send_email", response_model=ToolStatusResponse)
    async def _send_email(
        request: SendEmailRequest, sender: EmailSender
    ) -> ToolStatusResponse:
        result = await send_mail(sender, request.recipient, request.subject, request.body)
        return ToolStatusResponse(**result)

    return app
