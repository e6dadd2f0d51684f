import typing_extensions as te
from fastapi import Depends, Request

from .config import Settings
from .tools.email import GmailSender
from .tools.pdf_renderer import DocumentRenderer, RendererConfig


def provide_settings(request: Request) -> Settings:
    return request.app.state.settings


def provide_renderer(settings: Settings = Depends(provide_settings)) -> DocumentRenderer:
    return DocumentRenderer(RendererConfig.from_settings(settings))


def provide_tools(request: Request) -> list:
    return request.app.state.tools


def provide_email_sender(request: Request) -> GmailSender:
    return request.app.state.email_sender


AppSettings = te.Annotated[Settings, Depends(provide_settings)]
Renderer = te.Annotated[DocumentRenderer, Depends(provide_renderer)]
AgentTools = te.Annotated[list, Depends(provide_tools)]
EmailSender = te.Annotated[GmailSender, Depends(provide_email_sender)]
