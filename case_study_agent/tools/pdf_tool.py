"""
PDF Tool - exposes the case study renderer to the agent.
"""

from typing import Any, Dict, Optional

from langchain_core.tools import tool

from .pdf_renderer import DocumentRenderer

PDF_SUCCESS_STATUS = "PDF generated successfully"


def create_pdf(renderer: DocumentRenderer, title: str, content: str) -> Dict[str, Any]:
    """Core logic for the PDF tool. Render failures propagate."""
    document = renderer.render(title, content)
    return {"status": PDF_SUCCESS_STATUS, "pdf_url": document.locator}


def get_pdf_tools(renderer: Optional[DocumentRenderer] = None) -> list:
    """Generate the PDF tool bound to a renderer."""
    renderer = renderer or DocumentRenderer()

    @tool("create_pdf")
    def create_pdf_tool(title: str, content: str) -> dict:
        """
        Save the full formatted analysis as a styled PDF.

        Args:
            title: Report title, also used for the file name.
            content: The complete report. Use **Header** lines for sections,
                "* **Label**: text" or "* text" for bullets, "1. ..." for
                numbered questions, and blank lines between paragraphs.

        Returns the PDF status and a file:// URL to include in your reply.
        """
        return create_pdf(renderer, title, content)

    return [create_pdf_tool]
