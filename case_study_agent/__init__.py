"""
Case Study Agent - business case analysis assistant.

Usage:
    from case_study_agent.api import create_app
    app = create_app()

or run the server with:
    uvicorn case_study_agent.api:create_app --factory
"""

__version__ = "1.0.0"
