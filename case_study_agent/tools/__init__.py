from typing import Optional

from case_study_agent.config import Settings
from case_study_agent.tools.pdf_renderer import DocumentRenderer, RendererConfig
from case_study_agent.tools.pdf_tool import get_pdf_tools
from case_study_agent.tools.search import get_search_tools, normalize_search_response
from case_study_agent.tools.email import GmailSender, get_email_tools
from case_study_agent.tools.case_study_rag import (
    CaseStudyRetriever,
    get_case_study_rag_tools,
)


def build_retriever(settings: Settings) -> CaseStudyRetriever:
    return CaseStudyRetriever(
        mongodb_uri=settings.mongodb_uri,
        database=settings.mongodb_database,
        cohere_api_key=settings.cohere_api_key,
    )


def build_email_sender(settings: Settings) -> GmailSender:
    return GmailSender(api_key=settings.composio_api_key, user_id=settings.composio_user_id)


def get_all_tools(
    settings: Settings,
    renderer: Optional[DocumentRenderer] = None,
    retriever: Optional[CaseStudyRetriever] = None,
    sender: Optional[GmailSender] = None,
):
    """
    Returns a combined list of all available LangChain tools.

    Pass a long-lived ``retriever`` and ``sender`` to share their clients
    across calls; otherwise new ones are built for this tool set.
    """
    renderer = renderer or DocumentRenderer(RendererConfig.from_settings(settings))
    retriever = retriever or build_retriever(settings)
    sender = sender or build_email_sender(settings)
    return (
        get_search_tools(settings.serper_api_key)
        + get_email_tools(sender=sender)
        + get_pdf_tools(renderer)
        + get_case_study_rag_tools(retriever)
    )


__all__ = [
    "DocumentRenderer",
    "RendererConfig",
    "normalize_search_response",
    "build_retriever",
    "build_email_sender",
    "get_pdf_tools",
    "get_search_tools",
    "get_email_tools",
    "get_case_study_rag_tools",
    "get_all_tools",
]
