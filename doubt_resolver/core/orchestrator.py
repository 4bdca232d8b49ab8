"""
Doubt resolution orchestration.

Resolution flow for one question:
1. Classify - complexity and topic from the question text
2. Route - primary model configuration for the complexity level
3. Invoke - call the provider adapter (image requests use the vision model)
4. On success - price the call, record usage, return the result
5. On failure - retry once on the next tier; if that fails too, or no
   tier is left, return a deterministic offline response

At most two provider calls are made per question and they never overlap.
"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional

import structlog

from .complexity import ComplexityAssessment, ComplexityLevel, classify_complexity
from .cost_tracker import CostTracker
from .errors import PersistenceError, ProviderError, RoutingExhausted
from .router import ModelConfig, ModelRouter, Provider
from .token_counter import TokenUsage
from .topics import TopicClassification, classify_topic

if TYPE_CHECKING:
    from doubt_resolver.sdk.providers import ModelResponse, ProviderAdapter

log = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are an expert academic tutor for Indian students preparing for NEET, JEE Main, and JEE Advanced exams. Your role is to:

1. Provide step-by-step solutions with clear explanations
2. Simplify complex concepts using analogies and examples
3. Suggest related concepts the student should review
4. Identify potential misconceptions
5. Format mathematical expressions clearly

Always structure your response as:
## Solution
[Step-by-step solution]

## Simplified Explanation
[Easy-to-understand explanation]

## Related Concepts
[List of related topics to review]

Be encouraging, patient, and thorough in your explanations."""

IMAGE_PLACEHOLDER_QUESTION = "Image-based question"
IMAGE_DEFAULT_PROMPT = "Please analyze this image."
IMAGE_INSTRUCTIONS = (
    "The student has uploaded an image. Please carefully examine the image, "
    "identify any questions, problems, diagrams, or content shown, and provide "
    "a detailed step-by-step solution or explanation."
)
OFFLINE_MODEL_ID = "offline-fallback"
CHAT_SERVICE = "chat"


@dataclass(frozen=True)
class ResolutionResult:
    """Answer plus the classification that produced it.

    topic_confidence_proxy is the topic classifier's keyword density,
    reused as the answer's confidence score. It says nothing about the
    model's certainty.
    """
    response_text: str
    model_used: str
    complexity_level: ComplexityLevel
    difficulty_score: int
    topic_confidence_proxy: float
    topic_classification: TopicClassification
    token_usage: Optional[TokenUsage] = None

    @property
    def is_offline(self) -> bool:
        return self.token_usage is None


def compose_question(question: str, prior_context: Optional[str] = None) -> str:
    """Build the question text, folding in the previous turn for follow-ups."""
    if not prior_context:
        return question
    return (
        f'Context: The student previously asked "{prior_context}" and received '
        f"this answer. Now they have a follow-up question: {question}"
    )


def offline_response(topic: TopicClassification) -> str:
    """Deterministic answer used when every provider attempt failed."""
    return f"""## Solution
I apologize, but I'm currently unable to process this question through our AI models. Please try again in a moment.

## Question Details
- **Subject**: {topic.subject}
- **Topic**: {topic.topic}
- **Detected Complexity**: This appears to be a {topic.subject} question related to {topic.topic}.

## What You Can Do
1. Try rephrasing your question
2. Break down the problem into smaller parts
3. Contact your mentor for personalized help

We've logged this question and our team will review it."""


class DoubtResolver:
    """Classifies, routes and answers academic questions.

    Holds no per-request state, so one instance can serve concurrent
    requests. The cost tracker is the only shared writer.
    """

    def __init__(
        self,
        adapters: Mapping[Provider, "ProviderAdapter"],
        router: ModelRouter,
        cost_tracker: CostTracker,
        system_prompt: str = SYSTEM_PROMPT
    ):
        self.adapters = dict(adapters)
        self.router = router
        self.cost_tracker = cost_tracker
        self.system_prompt = system_prompt

    def resolve(
        self,
        question: str,
        actor_id: Optional[str] = None,
        prior_context: Optional[str] = None,
        image: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> ResolutionResult:
        """Answer one question.

        Always returns a result: provider failures degrade to the next
        tier and then to an offline response.

        Args:
            question: Question text (may be empty when an image is given)
            actor_id: Actor asking, recorded on the usage record
            prior_context: Previous question, for follow-ups
            image: Optional base64 image or data URL
            request_id: Request (doubt) id recorded on the usage record

        Returns:
            ResolutionResult

        Raises:
            ValueError: If neither question text nor image is given
        """
        if not (question and question.strip()) and not image:
            raise ValueError("question or image is required")

        question_text = compose_question(question or "", prior_context).strip()
        complexity = classify_complexity(question_text or IMAGE_PLACEHOLDER_QUESTION)
        # The placeholder carries no subject, so image-only questions stay General
        topic = classify_topic(question_text)

        log.debug(
            "resolver.classified",
            level=complexity.level.value,
            score=complexity.score,
            reasons=list(complexity.reasons),
            subject=topic.subject,
            topic=topic.topic,
        )

        prompt = question_text
        if image:
            prompt = f"{question_text or IMAGE_DEFAULT_PROMPT}\n\n{IMAGE_INSTRUCTIONS}"

        config = self._effective_config(self.router.select_model(complexity.level), image)
        start = time.monotonic()
        try:
            response = self._invoke(config, prompt, image)
        except ProviderError as primary_error:
            log.warning(
                "resolver.provider_failed",
                model_id=config.model_id,
                provider=config.provider.value,
                tier=config.tier,
                error=str(primary_error),
            )
            try:
                config = self._fallback_config(complexity.level, image)
                start = time.monotonic()
                response = self._invoke(config, prompt, image)
            except (ProviderError, RoutingExhausted) as fallback_error:
                log.error(
                    "resolver.offline_fallback",
                    level=complexity.level.value,
                    error=str(fallback_error),
                )
                return self._result(
                    offline_response(topic), OFFLINE_MODEL_ID, complexity, topic
                )
            log.info(
                "resolver.fallback_succeeded",
                model_id=config.model_id,
                tier=config.tier,
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        usage = response.usage
        self._record(config, usage, duration_ms, actor_id, request_id)

        return self._result(
            response.text, config.model_id, complexity, topic, token_usage=usage
        )

    def _effective_config(self, config: ModelConfig, image: Optional[str]) -> ModelConfig:
        # Image requests always go to the vision model, whatever the tier
        if image:
            return self.router.vision_model(config)
        return config

    def _fallback_config(self, level: ComplexityLevel, image: Optional[str]) -> ModelConfig:
        fallback = self.router.next_fallback(level)
        if fallback is None:
            raise RoutingExhausted(level.value)
        return self._effective_config(fallback, image)

    def _invoke(self, config: ModelConfig, prompt: str, image: Optional[str]) -> "ModelResponse":
        adapter = self.adapters.get(config.provider)
        if adapter is None:
            raise ProviderError(
                f"No adapter configured for {config.provider.value}",
                config.provider.value,
                config.model_id
            )
        return adapter.complete(
            model_id=config.model_id,
            system_prompt=self.system_prompt,
            user_content=prompt,
            max_tokens=config.max_output_tokens,
            image=image
        )

    def _record(
        self,
        config: ModelConfig,
        usage: TokenUsage,
        duration_ms: int,
        actor_id: Optional[str],
        request_id: Optional[str]
    ) -> None:
        cost = self.cost_tracker.token_cost(
            config.model_id, usage.input_tokens, usage.output_tokens
        )
        try:
            self.cost_tracker.record_usage(
                service=CHAT_SERVICE,
                model_id=config.model_id,
                provider=config.provider.value,
                cost_usd=cost,
                usage=usage,
                actor_id=actor_id,
                subject_request_id=request_id,
                duration_ms=duration_ms
            )
        except PersistenceError as e:
            # Accounting failures never fail the response
            log.error(
                "resolver.usage_record_failed",
                model_id=config.model_id,
                actor_id=actor_id,
                error=str(e),
            )

    @staticmethod
    def _result(
        text: str,
        model_used: str,
        complexity: ComplexityAssessment,
        topic: TopicClassification,
        token_usage: Optional[TokenUsage] = None
    ) -> ResolutionResult:
        return ResolutionResult(
            response_text=text,
            model_used=model_used,
            complexity_level=complexity.level,
            difficulty_score=complexity.score,
            topic_confidence_proxy=topic.confidence,
            topic_classification=topic,
            token_usage=token_usage
        )
