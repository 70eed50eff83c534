import logging
import os
import time
from typing import Callable, Optional

from openai import OpenAI, OpenAIError

from scout.db import get_session_factory, session_scope
from scout.schema import LlmCall

logger = logging.getLogger(__name__)

"""
BrainGateway

The one way Scout talks to language models. Every call is logged into
`llm_calls` (when telemetry is on) so the two AI roles of the contact
pipeline can be audited after the fact.

Current `context_type` enum:

  - "website_disambiguation"  → pick the official site among search results
  - "contact_extraction"      → recover emails / careers page from page text
  - "internal_diagnostic"     → internal tests / diagnostics

Anything outside this set is logged with a WARNING, but still written to the
DB (no hard failures).
"""

ALLOWED_CONTEXT_TYPES = {
    "website_disambiguation",
    "contact_extraction",
    "internal_diagnostic",
}

DEFAULT_MODEL = os.getenv("SCOUT_OPENAI_MODEL", "gpt-4.1-mini")


def _normalize_context_type(raw: Optional[str]) -> str:
    """
    None → "internal_diagnostic"; known values pass through; unknown values
    are kept as-is with a warning so the DB keeps full fidelity.
    """
    if raw is None:
        return "internal_diagnostic"

    if raw in ALLOWED_CONTEXT_TYPES:
        return raw

    logger.warning(
        "BrainGateway called with non-standard context_type=%r. "
        "Consider updating it to one of: %s",
        raw,
        sorted(ALLOWED_CONTEXT_TYPES),
    )
    return raw


def _telemetry_enabled() -> bool:
    raw = os.environ.get("SCOUT_LLM_TELEMETRY")
    if raw is None:
        return True
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _build_client() -> OpenAI:
    """
    Lazily construct the OpenAI client.

    Avoids crashing at import-time when OPENAI_API_KEY is missing.
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIError(
            "OPENAI_API_KEY is not set. "
            "Set it in the environment before calling BrainGateway.generate()."
        )
    return OpenAI(api_key=api_key)


class BrainGateway:
    """
    Thin wrapper around OpenAI that:
      1) Calls the model
      2) Logs to llm_calls
      3) Returns output_text

    Usage example:

        brain_gateway.generate(
            prompt=candidates_block,
            system=DISAMBIGUATION_SYSTEM_PROMPT,
            context_type="website_disambiguation",
            company_id=company.id,
            max_tokens=5,
        )
    """

    def __init__(
        self,
        client_instance: Optional[OpenAI] = None,
        session_factory: Optional[Callable] = None,
        log_calls: Optional[bool] = None,
    ):
        self._client: Optional[OpenAI] = client_instance
        self._session_factory = session_factory
        self._log_calls = _telemetry_enabled() if log_calls is None else log_calls

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = _build_client()
        return self._client

    def is_configured(self) -> bool:
        """True when a client was injected or OPENAI_API_KEY is present."""
        return self._client is not None or bool((os.getenv("OPENAI_API_KEY") or "").strip())

    def generate(
        self,
        prompt: str,
        system: str,
        model: Optional[str] = None,
        context_type: Optional[str] = None,
        company_id: Optional[str] = None,
        **params,
    ) -> str:
        """
        Simple text-in → text-out wrapper.

        The function will:
          - Call OpenAI Chat Completions.
          - Log a row in `llm_calls` with input/output, timing, and linkage.
          - Raise RuntimeError if the underlying OpenAI call fails.
        """
        norm_context_type = _normalize_context_type(context_type)
        model_name = model or DEFAULT_MODEL

        start = time.perf_counter()
        success = True
        output_text = ""

        try:
            response = self.client.chat.completions.create(
                model=model_name,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                **params,
            )
            output_text = response.choices[0].message.content or ""

        except Exception as e:
            success = False
            output_text = f"[ERROR] {type(e).__name__}: {e}"
            logger.exception("BrainGateway.generate failed")

        latency_ms = int((time.perf_counter() - start) * 1000)

        if self._log_calls:
            self._record_call(
                context_type=norm_context_type,
                model_name=model_name,
                input_text=f"[system]\n{system}\n\n[user]\n{prompt}",
                output_text=output_text,
                company_id=company_id,
                success=success,
                latency_ms=latency_ms,
            )

        if not success:
            raise RuntimeError("BrainGateway.generate failed, see logs / llm_calls")

        return output_text

    def _record_call(self, **row) -> None:
        try:
            factory = self._session_factory or get_session_factory()
            with session_scope(factory) as session:
                session.add(LlmCall(**row))
        except Exception:
            logger.exception("Failed to log llm_call")


# Shared singleton you can import in flows / scripts:
brain_gateway = BrainGateway()
