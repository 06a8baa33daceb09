from typing import Any, Dict
from fastapi import HTTPException
from pydantic import BaseModel
from app.core.config import settings
from app.core.exceptions import ProviderBusyError, ProviderEmptyResultError, ProviderUnavailableError
import logging
import openai

logger = logging.getLogger(__name__)


class GenerationResult(BaseModel):
    """Text and token accounting of one provider call."""
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def _token_usage(response) -> Dict[str, int]:
    usage = getattr(response, "usage_metadata", None)
    if usage:
        prompt = usage.get("input_tokens", 0)
        completion = usage.get("output_tokens", 0)
        return {
            "prompt": prompt,
            "completion": completion,
            "total": usage.get("total_tokens", prompt + completion)
        }

    token_usage = (getattr(response, "response_metadata", None) or {}).get("token_usage") or {}
    return {
        "prompt": token_usage.get("prompt_tokens", 0),
        "completion": token_usage.get("completion_tokens", 0),
        "total": token_usage.get("total_tokens", 0)
    }


def _response_text(response) -> str:
    content = getattr(response, "content", None)
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return (content or "").strip()


class ReviewResponder:
    """Chat completion client for review replies, one chain per model."""

    def __init__(self):
        self._chains: Dict[str, Any] = {}

    def _get_chain(self, model: str):
        """Lazy initialization of the prompt | llm chain for ``model``."""
        if model not in self._chains:
            if not settings.OPENAI_API_KEY:
                logger.error("OPENAI_API_KEY is not configured")
                raise HTTPException(status_code=500, detail="AI service not configured")

            # Import here to avoid heavy startup cost
            from langchain_openai import ChatOpenAI
            from langchain_core.prompts import ChatPromptTemplate

            llm = ChatOpenAI(
                model=model,
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,  # retrying is left to the caller
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL
            )
            prompt = ChatPromptTemplate.from_messages([
                ("system", "{system_prompt}"),
                ("human", "{user_prompt}"),
            ])
            self._chains[model] = prompt | llm
            logger.info(f"Initialized chat chain for model {model}")
        return self._chains[model]

    async def generate(self, system_prompt: str, user_prompt: str, model: str) -> GenerationResult:
        """
        Run one completion.

        Raises ProviderBusyError when the provider rate limits us,
        ProviderUnavailableError for transport and other provider failures and
        ProviderEmptyResultError when the answer carries no text. The provider's
        own error is only logged.
        """
        chain = self._get_chain(model)

        try:
            response = await chain.ainvoke({
                "system_prompt": system_prompt,
                "user_prompt": user_prompt
            })
        except openai.RateLimitError as e:
            logger.warning(f"Provider rate limited request for model {model}: {e}")
            raise ProviderBusyError()
        except openai.APIStatusError as e:
            logger.error(f"Provider returned {e.status_code} for model {model}: {e}")
            raise ProviderUnavailableError()
        except openai.APIError as e:
            logger.error(f"Provider request failed for model {model}: {e}")
            raise ProviderUnavailableError()

        text = _response_text(response)
        if not text:
            logger.error(f"Provider returned an empty completion for model {model}")
            raise ProviderEmptyResultError()

        usage = _token_usage(response)
        return GenerationResult(
            text=text,
            model=model,
            prompt_tokens=usage["prompt"],
            completion_tokens=usage["completion"],
            total_tokens=usage["total"]
        )


# Singleton instance
review_responder = ReviewResponder()
