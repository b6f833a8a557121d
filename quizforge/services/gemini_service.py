"""
Gemini AI service for question generation and summaries
"""
import asyncio
import google.generativeai as genai
from quizforge.config import settings
from quizforge.exceptions import ConfigurationError
from quizforge.utils import retry
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block if present"""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    else:
        return cleaned
    if cleaned.rstrip().endswith("```"):
        cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


class GeminiService:
    """Service for all Gemini AI operations"""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model_name = model_name or settings.GEMINI_MODEL
        self._model = None

    @property
    def model(self):
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    async def complete(self, prompt: str, json_output: bool = True) -> str:
        """
        Submit a prompt and return the raw completion text

        The call is bounded by LLM_TIMEOUT_SECONDS; a timeout surfaces as
        asyncio.TimeoutError.
        """
        generation_config = {"temperature": 0.7}
        if json_output:
            generation_config["response_mime_type"] = "application/json"

        model = self.model
        response = await asyncio.wait_for(
            model.generate_content_async(prompt, generation_config=generation_config),
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )
        return response.text

    async def complete_with_retry(self, prompt: str, json_output: bool = True) -> str:
        """complete() wrapped in rate-limit backoff"""
        return await retry.invoke(
            lambda: self.complete(prompt, json_output=json_output),
            max_retries=settings.LLM_MAX_RETRIES,
            initial_delay=settings.LLM_INITIAL_RETRY_DELAY,
            max_delay=settings.LLM_MAX_RETRY_DELAY,
        )

    async def summarize(self, text: str) -> str:
        """
        Summarize a chunk of text

        Any failure (timeout, exhausted retries, provider error) falls back
        to the leading SUMMARY_MAX_CHARS characters of the input. A missing
        API key is not recoverable and propagates.
        """
        prompt = (
            "Please create a concise summary of the following text, capturing all key "
            f"concepts, facts, and important information:\n\n{text}"
        )
        try:
            summary = await self.complete_with_retry(prompt, json_output=False)
            return summary.strip()
        except ConfigurationError:
            raise
        except asyncio.TimeoutError:
            logger.warning("Timeout generating summary, falling back to truncated text")
            return text[:settings.SUMMARY_MAX_CHARS]
        except Exception as e:
            logger.error(f"Failed to generate summary: {str(e)}")
            return text[:settings.SUMMARY_MAX_CHARS]

    def build_question_prompt(
        self,
        chunk: str,
        num_questions: int,
        key_terms: List[str],
        position: str
    ) -> str:
        """Create structured prompt for question generation"""

        terms_line = f"Key terms to emphasize: {', '.join(key_terms)}\n" if key_terms else ""

        return f"""
You are an expert quiz creator writing multiple-choice questions from a section of a document
(section {position}).

Create {num_questions} questions that test understanding of key concepts and important details.
Each question must have exactly 4 answer options with only one correct answer.
Questions should vary in difficulty and cover the whole section.
{terms_line}
Return ONLY valid JSON in this exact format (no markdown, no preamble):

{{
  "questions": [
    {{
      "question": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "answer": 0,
      "explanation": "Why the answer is correct"
    }}
  ]
}}

"answer" is the index (0-3) of the correct option.
If the content is insufficient, return {{"questions": []}}.

Content:

{chunk}
"""


# Global instance
gemini_service = GeminiService()
