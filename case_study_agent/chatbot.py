import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq
from langgraph.prebuilt import create_react_agent

from case_study_agent.config import Settings
from case_study_agent.exceptions import MissingConfigurationError
from case_study_agent.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

GEMINI_MODEL = "gemini-2.0-flash"
GROQ_MODEL = "llama-3.1-8b-instant"
RECURSION_LIMIT = 15

# Errors worth retrying on the fallback provider rather than surfacing.
FALLBACK_ERROR_MARKERS = [
    "429",
    "413",
    "rate_limit",
    "resource_exhausted",
    "quota",
    "tool_use_failed",
    "failed_generation",
    "failed to call",
]


def _gemini(settings: Settings) -> BaseChatModel:
    return ChatGoogleGenerativeAI(
        model=GEMINI_MODEL, temperature=0, google_api_key=settings.google_api_key
    )


def _groq(settings: Settings) -> BaseChatModel:
    return ChatGroq(model=GROQ_MODEL, temperature=0, groq_api_key=settings.groq_api_key)


def get_llm_with_fallback(settings: Settings) -> Tuple[BaseChatModel, str]:
    """
    Get the first available LLM: Google Gemini, then Groq.
    Returns (llm, provider_name) tuple.
    """
    if settings.google_api_key:
        return _gemini(settings), "gemini"
    if settings.groq_api_key:
        return _groq(settings), "groq"
    raise MissingConfigurationError("GOOGLE_API_KEY")


def is_fallback_error(error: Exception) -> bool:
    error_str = str(error).lower()
    return any(marker in error_str for marker in FALLBACK_ERROR_MARKERS)


async def run_agent_with_fallback(
    agent_factory: Callable[[BaseChatModel, str], Any],
    inputs: dict,
    settings: Settings,
) -> Tuple[dict, str]:
    """
    Run agent with automatic fallback to Groq on rate limit errors.
    agent_factory is a function that takes (llm, provider_name) and returns agent.
    """
    llm, provider = get_llm_with_fallback(settings)
    try:
        agent = agent_factory(llm, provider)
        state = await agent.ainvoke(inputs, config={"recursion_limit": RECURSION_LIMIT})
        return state, provider
    except Exception as e:
        if provider != "gemini" or not settings.groq_api_key or not is_fallback_error(e):
            raise
        logger.warning(f"Gemini error ({e}), falling back to Groq.")

    agent = agent_factory(_groq(settings), "groq")
    state = await agent.ainvoke(inputs, config={"recursion_limit": RECURSION_LIMIT})
    return state, "groq"


def convert_history(history: Optional[List[Dict]]) -> List[BaseMessage]:
    messages = []
    if not history:
        return messages
    for msg in history:
        role = msg.get("role")
        content = msg.get("content", "")
        if role == "user":
            messages.append(HumanMessage(content=content))
        elif role == "assistant":
            messages.append(AIMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
    return messages


async def chat(
    user_message: str,
    settings: Settings,
    conversation_history: Optional[List[Dict]] = None,
    tools: Optional[list] = None,
) -> dict:
    """
    Run one turn of the case study agent.

    Agent failures are reported in the message rather than raised so a
    single bad turn does not take down the caller.
    """
    if tools is None:
        from case_study_agent.tools import get_all_tools

        tools = get_all_tools(settings)

    def create_agent(llm, provider_name):
        return create_react_agent(model=llm, tools=tools, prompt=SYSTEM_PROMPT)

    formatted_history = convert_history(conversation_history)
    inputs = {"messages": formatted_history + [HumanMessage(content=user_message)]}

    provider_used = None
    try:
        state, provider_used = await run_agent_with_fallback(
            create_agent, inputs, settings
        )
        response_message = state["messages"][-1].content
    except Exception as e:
        logger.error(f"Agent execution failed: {e}")
        response_message = f"Error executing task: {str(e)}"

    return {
        "type": "final_result",
        "message": response_message,
        "provider": provider_used,
    }
