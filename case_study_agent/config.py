"""
Environment configuration for the Case Study Agent.

Values come from the process environment, with a local ``.env`` file loaded
first. Required values are checked once, when the app is created.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import MissingConfigurationError

load_dotenv()

DEFAULT_OUTPUT_DIR = Path.home() / "Documents" / "case-studies"
DEFAULT_AUTHOR = "Prepared by Case Study Agent"

REQUIRED_VARIABLES = ("MONGODB_URI", "MONGODB_DATABASE")


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str
    mongodb_database: str
    google_api_key: str = ""
    groq_api_key: str = ""
    serper_api_key: str = ""
    composio_api_key: str = ""
    composio_user_id: str = "default"
    cohere_api_key: str = ""
    output_dir: Path = DEFAULT_OUTPUT_DIR
    author: str = DEFAULT_AUTHOR
    env: str = "development"
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.env == "development"


def get_settings() -> Settings:
    """Read settings from the environment, failing fast on missing values."""
    for variable in REQUIRED_VARIABLES:
        if not os.getenv(variable):
            raise MissingConfigurationError(variable)

    output_dir = os.getenv("CASE_STUDY_OUTPUT_DIR")
    return Settings(
        mongodb_uri=os.environ["MONGODB_URI"],
        mongodb_database=os.environ["MONGODB_DATABASE"],
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        serper_api_key=os.getenv("SERPER_API_KEY", ""),
        composio_api_key=os.getenv("COMPOSIO_API_KEY", ""),
        composio_user_id=os.getenv("COMPOSIO_USER_ID", "default"),
        cohere_api_key=os.getenv("COHERE_API_KEY", ""),
        output_dir=Path(output_dir).expanduser() if output_dir else DEFAULT_OUTPUT_DIR,
        author=os.getenv("CASE_STUDY_AUTHOR", DEFAULT_AUTHOR),
        env=os.getenv("ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root handler; a no-op if one is already configured."""
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
