import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..clients.interfaces import TextGenerationClient
from ..models.document_models import Attachment
from ..utils.config_loader import load_prompts
from ..utils.exceptions import ConfigurationError
from ..utils.retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, call_with_retry

logger = logging.getLogger(__name__)


class AgentBase:
    """
    Shared plumbing for the pipeline agents: the text generation client, the
    retry policy around every call to it, and prompt templates that may be
    overridden from a JSON file.
    """
    agent_name = "Agent"
    DEFAULT_PROMPTS: Dict[str, str] = {}

    def __init__(self, llm_client: TextGenerationClient,
                 retry_attempts: int = DEFAULT_ATTEMPTS, retry_delay: float = DEFAULT_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                 prompts_file_path: Optional[str] = None):
        self.llm_client = llm_client
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep
        self.prompts = self._load_prompts(prompts_file_path)

    def _load_prompts(self, prompts_file_path: Optional[str]) -> Dict[str, str]:
        try:
            loaded_prompts = load_prompts(prompts_file_path)
        except ConfigurationError as e:
            logger.warning(f"{self.agent_name}: Failed to load prompts from JSON file ({e}). Using default prompts.")
            loaded_prompts = {}

        prompts = {}
        for key, default_prompt in self.DEFAULT_PROMPTS.items():
            loaded_prompt = loaded_prompts.get(key)
            if loaded_prompt is None or loaded_prompt == default_prompt:
                prompts[key] = default_prompt
            else:
                logger.info(f"{self.agent_name}: Custom prompt for '{key}' loaded.")
                prompts[key] = loaded_prompt
        return prompts

    def _render(self, key: str, **fields) -> str:
        try:
            return self.prompts[key].format(**fields)
        except (KeyError, IndexError, ValueError) as e:
            logger.warning(f"{self.agent_name}: Custom prompt '{key}' could not be rendered ({e}). Using default.")
            return self.DEFAULT_PROMPTS[key].format(**fields)

    async def _generate(self, prompt: str, attachments: Optional[List[Attachment]] = None) -> str:
        return await call_with_retry(
            lambda: self.llm_client.generate(prompt, attachments or None),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            sleep=self.sleep,
        )
