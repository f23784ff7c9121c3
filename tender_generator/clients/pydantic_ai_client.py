import os
import logging
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic_ai import Agent as PydanticAIAgent
from pydantic_ai import BinaryContent
from pydantic_ai.exceptions import ModelHTTPError, UserError

from .interfaces import TextGenerationClient
from ..models.document_models import Attachment
from ..utils.exceptions import GenerationServiceError

logger = logging.getLogger(__name__)

# Environment variable each provider prefix reads its key from.
PROVIDER_KEY_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google-gla": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert tender response writer and analyst. Follow the requested "
    "output format exactly and never invent facts that are not in the provided material."
)


class PydanticAITextClient(TextGenerationClient):
    """TextGenerationClient backed by a pydantic-ai Agent."""

    def __init__(self, model_name: str = "openai:gpt-3.5-turbo", api_key: Optional[str] = None,
                 stream: bool = False, system_prompt: str = DEFAULT_SYSTEM_PROMPT):
        load_dotenv()
        provider = model_name.split(":", 1)[0] if ":" in model_name else "openai"
        key_var = PROVIDER_KEY_VARS.get(provider)
        if api_key and key_var:
            os.environ[key_var] = api_key
        if key_var and not os.getenv(key_var):
            raise ValueError(f"{key_var} not found in environment variables. Please set it in a .env file.")

        self.model_name = model_name
        self.stream = stream
        self.llm_agent = PydanticAIAgent(model=self.model_name, system_prompt=system_prompt)

    def _build_user_prompt(self, prompt: str, attachments: Optional[List[Attachment]]) -> Union[str, list]:
        if not attachments:
            return prompt
        parts: list = [prompt]
        for attachment in attachments:
            parts.append(BinaryContent(data=attachment.data, media_type=attachment.media_type))
        return parts

    async def _run_streaming(self, user_prompt) -> str:
        pieces: List[str] = []
        async with self.llm_agent.run_stream(user_prompt) as result:
            async for delta in result.stream_text(delta=True):
                pieces.append(delta)
        return "".join(pieces)

    async def generate(self, prompt: str, attachments: Optional[List[Attachment]] = None) -> str:
        user_prompt = self._build_user_prompt(prompt, attachments)
        try:
            if self.stream:
                text = await self._run_streaming(user_prompt)
            else:
                run_result = await self.llm_agent.run(user_prompt)
                text = run_result.output if run_result is not None else None
        except ModelHTTPError as e:
            retryable = e.status_code == 429 or e.status_code >= 500
            logger.error(f"PydanticAITextClient: HTTP {e.status_code} from {self.model_name}: {e}")
            raise GenerationServiceError(
                message=f"Model endpoint returned HTTP {e.status_code}: {e}",
                agent_name="PydanticAITextClient",
                retryable=retryable,
                status_code=e.status_code,
            ) from e
        except UserError as e:
            logger.error(f"PydanticAITextClient: configuration error for {self.model_name}: {e}")
            raise GenerationServiceError(
                message=f"Model configuration error: {e}",
                agent_name="PydanticAITextClient",
                retryable=False,
            ) from e
        except Exception as e:
            logger.error(f"PydanticAITextClient: LLM call failed: {e.__class__.__name__}: {e}")
            raise GenerationServiceError(
                message=f"LLM call failed: {e}",
                agent_name="PydanticAITextClient",
            ) from e

        if not text or not str(text).strip():
            raise GenerationServiceError(message="LLM returned an empty response.", agent_name="PydanticAITextClient")
        return str(text)
