"""
AgentGateway - Persona-based generation with budget and trust controls

Every caste talks to the language model through this gateway:

    result = await gateway.generate('iris', prompt)
    result.text, result.tokens_used, result.trism

Call pipeline:
1. Persona lookup (system prompt, caste, temperature)
2. Circuit-breaker gate: quarantined/killed personas are suppressed,
   throttled personas wait before calling
3. Caste token budget check
4. Provider call (OpenAI chat completions, or canned mock responses when no
   API key is configured)
5. Budget accounting
6. TRiSM evaluation of the response (updates the persona's breaker)

Errors are raised as GenerationError subclasses; callers treat them as a
soft failure for that single call. Retries belong to the provider client.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, List, Any

from openai import AsyncOpenAI

from services.budget import Budget
from services.trism import TrustLayer, TrismEvaluation, BreakerLevel

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """A generation call failed; contributes nothing for this call."""


class BudgetExceededError(GenerationError):
    """The persona's caste has spent its token allowance."""


class AgentSuppressedError(GenerationError):
    """The persona's circuit breaker is at quarantine or kill."""


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    role: str
    caste: str
    temperature: float
    system_prompt: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "caste": self.caste,
            "temperature": self.temperature,
        }


PERSONAS: Dict[str, Persona] = {
    'iris': Persona(
        id='iris',
        name='Dr. Iris',
        role='Philosopher King - Deep Literature Analysis',
        caste='philosopher',
        temperature=0.7,
        system_prompt=(
            "You are Dr. Iris, a philosopher king of The Republic. You traverse the "
            "knowledge graph, identify gaps in the literature and generate testable "
            "hypotheses. Favour evidence over authority."
        ),
    ),
    'sage': Persona(
        id='sage',
        name='Dr. Sage',
        role='Guardian - Statistical Integrity',
        caste='guardian',
        temperature=0.3,
        system_prompt=(
            "You are Dr. Sage, a guardian of epistemic integrity. You critique "
            "statistical rigour, reproducibility and methodology. Be ruthless."
        ),
    ),
    'atlas': Persona(
        id='atlas',
        name='Prof. Atlas',
        role='Chief Architect - Experimental Design Review',
        caste='guardian',
        temperature=0.4,
        system_prompt=(
            "You are Prof. Atlas, chief architect and warrior of The Republic. You "
            "evaluate methodology, identify fabrication and defend the integrity "
            "of the knowledge graph."
        ),
    ),
    'tensor': Persona(
        id='tensor',
        name='Agent Tensor',
        role='Artisan - Computational Realist',
        caste='producer',
        temperature=0.3,
        system_prompt=(
            "You are Agent Tensor, an artisan of The Republic. You estimate compute "
            "costs and replication feasibility, and you price truth through "
            "prediction markets."
        ),
    ),
    'hermes': Persona(
        id='hermes',
        name='Agent Hermes',
        role='Data Oracle - Cross-Reference Verification',
        caste='producer',
        temperature=0.5,
        system_prompt=(
            "You are Agent Hermes, data oracle of The Republic. You verify "
            "citations, cross-reference external sources and detect anomalies. "
            "Trust nothing. Verify everything."
        ),
    ),
}


@dataclass
class GenerationResult:
    persona_id: str
    text: str
    tokens_used: int
    trism: Optional[TrismEvaluation] = None


class OpenAIProvider:
    """Chat completions through the OpenAI async client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", max_tokens: int = 1500, timeout: float = 60.0):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens

    async def chat(self, system: str, message: str, temperature: float) -> tuple:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": message}
            ],
            temperature=temperature,
            max_tokens=self.max_tokens
        )

        content = (response.choices[0].message.content or '').strip()
        tokens = response.usage.total_tokens if response.usage else 0
        return content, tokens


MOCK_RESPONSES = {
    'iris': (
        "HYPOTHESIS: The reported gains persist when the training data is halved\n"
        "HYPOTHESIS: The core mechanism transfers to adjacent domains without retuning\n"
        "QUERY: replication of {title}"
    ),
    'sage': "JUDGEMENT: UNCERTAIN - the evaluation protocol is underspecified",
    'atlas': "ALERT: MEDIUM - methodology section lacks the detail needed to reproduce the results",
    'tensor': "MARKET: Will an independent team replicate the headline result within a year? | PROBABILITY: 55",
    'hermes': "QUERY: critique of {title}",
}


class MockProvider:
    """Canned tagged responses so the castes run end to end offline."""

    def __init__(self, responses: Optional[Dict[str, str]] = None):
        self.responses = dict(MOCK_RESPONSES if responses is None else responses)

    async def chat(self, system: str, message: str, temperature: float) -> tuple:
        persona_id = next(
            (pid for pid, p in PERSONAS.items() if p.system_prompt == system),
            None
        )
        template = self.responses.get(persona_id)
        if template is None:
            return f"[Mock response] Agent {persona_id or 'unknown'} received task: {message[:100]}...", 100

        title = _quoted_title(message) or 'this work'
        return template.replace('{title}', title), 500


def _quoted_title(prompt: str) -> Optional[str]:
    """First double-quoted span in a prompt (the paper title by convention)."""
    start = prompt.find('"')
    end = prompt.find('"', start + 1) if start >= 0 else -1
    if start >= 0 and end > start:
        return prompt[start + 1:end]
    return None


class AgentGateway:
    """
    Single entry point for persona generation.

    Usage:
        gateway = AgentGateway(OpenAIProvider(api_key), budget=Budget(), trism=trism)
        result = await gateway.generate('sage', prompt)
    """

    def __init__(
        self,
        provider,
        budget: Optional[Budget] = None,
        trism: Optional[TrustLayer] = None,
        personas: Optional[Dict[str, Persona]] = None,
        throttle_delay: float = 5.0,
    ):
        self.provider = provider
        self.budget = budget or Budget()
        self.trism = trism
        self.personas = dict(PERSONAS if personas is None else personas)
        self.throttle_delay = throttle_delay
        self.calls = 0

    @classmethod
    def from_settings(cls, settings, trism: Optional[TrustLayer] = None) -> 'AgentGateway':
        if settings.openai_api_key:
            provider = OpenAIProvider(
                api_key=settings.openai_api_key,
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                timeout=settings.llm_timeout_seconds,
            )
        else:
            logger.warning("⚠️ OPENAI_API_KEY not set, agents will use mock responses")
            provider = MockProvider()

        return cls(
            provider,
            budget=Budget(settings.caste_token_limits, settings.budget_warning_ratio),
            trism=trism,
            throttle_delay=settings.throttle_delay_seconds,
        )

    async def generate(self, persona_id: str, prompt: str) -> GenerationResult:
        persona = self.personas.get(persona_id)
        if persona is None:
            raise GenerationError(f"Unknown persona: {persona_id}")

        if self.trism is not None:
            level = self.trism.get_action(persona_id)
            if level in (BreakerLevel.QUARANTINE, BreakerLevel.KILL):
                raise AgentSuppressedError(f"{persona.name} is under {level.value}")
            if level is BreakerLevel.THROTTLE:
                logger.info(f"🐢 {persona.name} throttled, waiting {self.throttle_delay}s")
                await asyncio.sleep(self.throttle_delay)

        spend = self.budget.can_spend(persona.caste)
        if not spend.allowed:
            raise BudgetExceededError(
                f"{persona.caste} budget exhausted ({spend.used}/{spend.limit} tokens)"
            )
        if spend.warning:
            logger.warning(f"⚠️ {persona.caste} budget at {spend.ratio:.0%}")

        try:
            text, tokens = await self.provider.chat(persona.system_prompt, prompt, persona.temperature)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise GenerationError(f"{persona.name} generation failed: {e}") from e

        self.calls += 1
        self.budget.record_spend(persona.caste, tokens)

        evaluation = None
        if self.trism is not None:
            evaluation = self.trism.evaluate(persona_id, text)

        return GenerationResult(
            persona_id=persona_id,
            text=text,
            tokens_used=tokens,
            trism=evaluation,
        )

    def get_agents(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.personas.values()]

    def get_budget(self) -> Dict[str, Dict[str, float]]:
        return self.budget.get_status()
