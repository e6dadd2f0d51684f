from .main_prompt import SYSTEM_PROMPT

__all__ = ["SYSTEM_PROMPT"]
