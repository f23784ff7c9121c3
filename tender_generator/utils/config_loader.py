import json
import os
import logging
from typing import Dict, Optional

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Prompt identifiers an override file may define. Each agent owns a default
# for every key it uses, so a file only needs the keys it wants to change.
KNOWN_PROMPT_KEYS = [
    "requirement_extraction",
    "plan_generation",
    "section_draft",
    "section_creative",
    "compliance_check",
]

DEFAULT_PROMPTS_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "prompts.json"
)


class GeneratorSettings(BaseSettings):
    """Generator settings, read from TENDER_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TENDER_",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    model_name: str = Field(default="openai:gpt-3.5-turbo", validation_alias="TENDER_MODEL",
                            description="pydantic-ai model string")
    max_iterations: int = Field(default=2, ge=1, description="Drafts allowed per section, including the first")
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0, description="Seconds; the n-th retry waits n * retry_delay")
    max_concurrent_sections: Optional[int] = Field(default=None, ge=1)
    prompts_file: Optional[str] = Field(default=None)

    @model_validator(mode="after")
    def _check_overlap(self):
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self


def load_settings(env_file: Optional[str] = None) -> GeneratorSettings:
    """
    Builds GeneratorSettings from the environment and ``env_file`` (default ``.env``).

    Raises:
        ConfigurationError: If any TENDER_* variable holds an invalid value.
    """
    try:
        settings = GeneratorSettings(_env_file=env_file or ".env")
    except ValidationError as e:
        err_msg = f"Invalid generator settings in environment: {e}"
        logger.error(err_msg)
        raise ConfigurationError(err_msg) from e
    logger.debug(f"Loaded generator settings: {settings.model_dump()}")
    return settings


def load_prompts(prompts_file_path: Optional[str] = None) -> Dict[str, str]:
    """
    Loads prompt overrides from a JSON file.

    Args:
        prompts_file_path: Optional path to the prompts JSON file. If None,
                           TENDER_PROMPTS_FILE is used, then the packaged
                           config/prompts.json.

    Returns:
        A dictionary where keys are prompt identifiers and values are prompt strings.
        Empty when no explicit path is given and the default file does not exist.

    Raises:
        ConfigurationError: If an explicitly requested file cannot be loaded,
                            is malformed, or holds non-string prompts.
    """
    explicit = prompts_file_path is not None or bool(os.getenv("TENDER_PROMPTS_FILE"))
    if prompts_file_path is None:
        prompts_file_path = os.getenv("TENDER_PROMPTS_FILE") or DEFAULT_PROMPTS_PATH

    if not explicit and not os.path.exists(prompts_file_path):
        logger.debug(f"No prompt overrides at {prompts_file_path}; using built-in prompts.")
        return {}

    try:
        logger.info(f"Attempting to load prompts from: {prompts_file_path}")
        with open(prompts_file_path, 'r', encoding='utf-8') as f:
            prompts_data = json.load(f)

        if not isinstance(prompts_data, dict):
            err_msg = f"Prompts file {prompts_file_path} must contain a JSON object."
            logger.error(err_msg)
            raise ConfigurationError(err_msg)

        for key, value in prompts_data.items():
            if not isinstance(value, str):
                err_msg = f"Invalid type for prompt '{key}' in {prompts_file_path}. Expected string, got {type(value).__name__}."
                logger.error(err_msg)
                raise ConfigurationError(err_msg)
            if key not in KNOWN_PROMPT_KEYS:
                logger.warning(f"Unknown prompt key '{key}' in {prompts_file_path} will be ignored.")

        logger.info(f"Successfully loaded {len(prompts_data)} prompts from {prompts_file_path}")
        return prompts_data

    except FileNotFoundError:
        err_msg = f"Prompts file not found at {prompts_file_path}."
        logger.error(err_msg)
        raise ConfigurationError(err_msg) from None
    except json.JSONDecodeError as e:
        err_msg = f"Error decoding JSON from prompts file {prompts_file_path}: {e}."
        logger.error(err_msg)
        raise ConfigurationError(err_msg) from e
