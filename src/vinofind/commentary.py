"""
Natural-language commentary for ranked results.

Invoked by the application layer after ranking. Uses the OpenAI chat API
when a client is configured and falls back to templated text whenever the
API is missing or fails, so commentary never raises to the caller.
"""

import logging
from typing import Dict, List, Optional

from openai import OpenAI, APIConnectionError, APITimeoutError, RateLimitError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from vinofind.cache import JsonFileCache
from vinofind.config import OPENAI_API_KEY, OPENAI_MAX_TOKENS, OPENAI_MODEL, OPENAI_TEMPERATURE
from vinofind.constants import AlgorithmConstants, CommentType, RED_VARIETY_MARKERS
from vinofind.error_handling import LLMError, handle_llm_error
from vinofind.schema import CommentContext, WineRecord
from vinofind.utils import sanitize_text_input

logger = logging.getLogger(__name__)

BASE_SYSTEM_PROMPT = (
    "You are an experienced sommelier and wine assistant. Be friendly, informative "
    "and professional. Use the occasional emoji for warmth."
)

SYSTEM_PROMPTS: Dict[CommentType, str] = {
    CommentType.FILTERED: "Explain why the wine fits the user's request.",
    CommentType.TASTE: "Analyze the user's preferences and give a personal recommendation.",
    CommentType.SIMPLE: "Help the user find the right wine from a short description.",
    CommentType.WINE_DETAILS: "Give an expert characterization of the wine.",
    CommentType.PAIRING: "Give concrete food pairing advice.",
    CommentType.OCCASION: "Suggest the best occasions to open this wine.",
}


def _or(value, default: str) -> str:
    return str(value) if value not in (None, "") else default


def is_red(wine: WineRecord) -> bool:
    variety = (wine.variety or "").lower()
    return any(marker in variety for marker in RED_VARIETY_MARKERS)


def price_category(price: Optional[float]) -> str:
    if not price or price < AlgorithmConstants.BUDGET_PRICE_CEILING:
        return "budget"
    if price < AlgorithmConstants.PREMIUM_PRICE_FLOOR:
        return "mid-range"
    return "premium"


# =======================
# PROMPTS
# =======================

def _wine_block(wine: Optional[WineRecord]) -> str:
    if wine is None:
        return "- (no matching wine)"
    return (
        f"- Name: {wine.title}\n"
        f"- Variety: {_or(wine.variety, 'not specified')}\n"
        f"- Country: {_or(wine.country, 'not specified')}\n"
        f"- Price: ${_or(wine.price, 'n/a')}\n"
        f"- Rating: {_or(wine.rating, 'n/a')}/100"
    )


def build_prompt(comment_type: CommentType, context: CommentContext) -> str:
    """User prompt for one commentary request."""
    query = sanitize_text_input(context.query, AlgorithmConstants.MAX_TEXT_INPUT_LENGTH)
    top = context.top_wine

    if comment_type == CommentType.FILTERED:
        filters = context.filters
        return f"""Explain why these wines fit the user's request.

Request: "{query}"

Filters:
- Variety: {_or(filters and filters.variety, 'any')}
- Country: {_or(filters and filters.country, 'any')}
- Max price: ${_or(filters and filters.max_price, 'no limit')}

Top recommendation:
{_wine_block(top)}

Description: {_or(top and top.description, 'no description')}

Answer in 2-3 sentences."""

    if comment_type == CommentType.TASTE:
        profile = context.profile
        selected = ", ".join(w.title for w in context.selected_wines) or "none"
        if profile is None:
            return f"Recommend a wine for someone who enjoyed: {selected}"
        varieties = ", ".join(f"{v.variety} ({v.count}x)" for v in profile.favorite_varieties)
        countries = ", ".join(f"{c.country} ({c.count}x)" for c in profile.preferred_countries)
        return f"""Analyze the user's taste and explain why these recommendations suit it.

Selected wines: {selected}

Preference analysis:
- Favorite varieties: {varieties or 'varied'}
- Preferred countries: {countries or 'varied'}
- Average price: ${profile.average_price:.2f}
- Average rating: {profile.average_rating:.1f}/100

Best recommendation:
{_wine_block(top)}

Answer in 2-3 sentences."""

    if comment_type == CommentType.SIMPLE:
        return f"""The user is looking for: "{query}"

Top match:
{_wine_block(top)}

Description: {_or(top and top.description, 'no description')}

Explain in 2-3 sentences why this wine fits."""

    wine = context.wine
    if comment_type == CommentType.WINE_DETAILS:
        return f"""Give an expert characterization of this wine.

{_wine_block(wine)}
- Region: {_or(wine and wine.region, 'not specified')}
- Winery: {_or(wine and wine.winery, 'not specified')}
- Flavor profile: {_or(wine and wine.flavor_profile, 'not specified')}
- Aroma: {_or(wine and wine.aroma, 'not specified')}
- Body: {_or(wine and wine.body, 'not specified')}
- Tannins: {_or(wine and wine.tannins, 'not specified')}
- Acidity: {_or(wine and wine.acidity, 'not specified')}

Description: {_or(wine and wine.description, 'no description')}

Answer in 3-4 sentences: character, potential, best moments to open it."""

    if comment_type == CommentType.PAIRING:
        return f"""Suggest ideal food pairings for this wine.

{_wine_block(wine)}
- Body: {_or(wine and wine.body, 'medium')}, tannins: {_or(wine and wine.tannins, 'moderate')}
- Flavor profile: {_or(wine and wine.flavor_profile, 'fruity')}

Name 3-4 concrete dishes, the serving temperature and an alternative."""

    return f"""Which occasions suit this wine best?

{_wine_block(wine)}
- Body: {_or(wine and wine.body, 'medium')}, flavor: {_or(wine and wine.flavor_profile, 'balanced')}

List 3-4 fitting occasions with a practical tip."""


# =======================
# TEMPLATED FALLBACK
# =======================

def local_comment(comment_type: CommentType, context: CommentContext) -> str:
    """Templated commentary used when the LLM is unavailable."""
    top = context.top_wine
    wine = context.wine

    if comment_type in (CommentType.FILTERED, CommentType.SIMPLE, CommentType.TASTE) and top is None:
        return "🍷 No wines matched this time. Try loosening the filters or describing the wine differently."

    if comment_type == CommentType.FILTERED:
        return (
            f"🍷 Great pick! \"{top.title}\" fits your request \"{context.query or ''}\". "
            f"This {_or(top.variety, 'wine')} from {_or(top.country, 'a renowned region')} "
            f"brings real depth of flavor. Recommended! ✨"
        )

    if comment_type == CommentType.TASTE:
        favorite = "similar styles"
        if context.profile and context.profile.favorite_varieties:
            favorite = context.profile.favorite_varieties[0].variety
        return (
            f"🎯 Based on your picks I found a close match: \"{top.title}\", "
            f"a {_or(top.variety, 'wine')} that suits your taste for {favorite}. "
            f"Balanced, with a long finish. 🍇"
        )

    if comment_type == CommentType.SIMPLE:
        return (
            f"✨ For \"{context.query or ''}\" I recommend \"{top.title}\"! "
            f"This {_or(top.variety, 'wine')} at ${_or(top.price, 'a fair price')} "
            f"offers a balanced taste and aroma. 🥂"
        )

    if wine is None:
        if comment_type == CommentType.PAIRING:
            return "🍽️ Pairs well with grilled dishes, aged cheeses and seasonal vegetables."
        return "🍷 A versatile wine for dinners and gatherings."

    if comment_type == CommentType.WINE_DETAILS:
        return (
            f"📊 Expert notes:\n\n"
            f"🍇 {_or(wine.variety, 'Wine')} from {_or(wine.country, 'a renowned region')}\n"
            f"💰 Price segment: {price_category(wine.price)}\n"
            f"🎯 Character: {_or(wine.body, 'medium')} body, {_or(wine.aroma, 'pleasant aroma')}\n"
            f"✨ Ideal for: special dinners\n\n"
            f"Good potential, and approachable for newcomers and connoisseurs alike."
        )

    if comment_type == CommentType.PAIRING:
        if is_red(wine):
            pairings = ["🥩 Rib-eye steak with rosemary", "🧀 Aged parmesan", "🍝 Pasta bolognese"]
            temperature = "16-18°C"
        else:
            pairings = ["🦐 Seafood with lemon", "🍗 Chicken in cream sauce", "🥗 Fresh salads"]
            temperature = "8-12°C"
        return (
            "🍽️ Ideal pairings:\n\n" + "\n".join(pairings) +
            f"\n\n🌡️ Serving temperature: {temperature}\n⏱️ Open 15-30 minutes before serving"
        )

    if wine.price and wine.price > AlgorithmConstants.PREMIUM_PRICE_FLOOR:
        occasions = ["🎉 Celebration dinner", "💕 Romantic evening", "🤝 Business dinner", "🎂 Milestone event"]
    else:
        occasions = ["🏠 Dinner at home", "👨‍👩‍👧‍👦 Family lunch", "🎬 Movie night", "🌇 Sunset with friends"]
    return "🎉 Perfect for:\n\n" + "\n".join(f"{i}. {o}" for i, o in enumerate(occasions, 1))


# =======================
# GENERATOR
# =======================

class CommentaryGenerator:
    """
    Commentary collaborator.

    Features:
    - OpenAI chat completions with retry on transient errors
    - Response caching
    - Templated fallback, so generate() always returns text
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        cache: Optional[JsonFileCache] = None,
        model: str = OPENAI_MODEL,
        temperature: float = OPENAI_TEMPERATURE,
        max_tokens: int = OPENAI_MAX_TOKENS
    ):
        """
        Args:
            client: OpenAI client; None means templated commentary only
            cache: Optional cache for API responses
            model: Chat model name
            temperature: Sampling temperature
            max_tokens: Completion length cap
        """
        self.client = client
        self.cache = cache
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_env(cls, cache: Optional[JsonFileCache] = None) -> 'CommentaryGenerator':
        """Build with an OpenAI client when OPENAI_API_KEY is set."""
        if not OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set, using templated commentary")
            return cls(cache=cache)
        return cls(client=OpenAI(api_key=OPENAI_API_KEY), cache=cache)

    @property
    def uses_api(self) -> bool:
        return self.client is not None

    def generate(self, comment_type: CommentType, context: CommentContext) -> str:
        """
        Produce a short annotation for a ranked result set or single wine.

        Args:
            comment_type: Kind of comment
            context: Structured context (query, results, profile, wine...)

        Returns:
            Comment text; templated text when the API is unavailable
        """
        comment_type = CommentType(comment_type)

        if self.client is None:
            return local_comment(comment_type, context)

        cache_key = f"{comment_type.value}:{context.model_dump_json()}"
        if self.cache is not None:
            cached = self.cache.get(cache_key, namespace="comment")
            if cached:
                logger.info("Using cached commentary")
                return cached

        messages = self._build_messages(comment_type, context)

        try:
            comment = self._call_openai_with_retry(messages)
        except Exception as e:
            fallback = local_comment(comment_type, context)
            try:
                return handle_llm_error(e, f"{comment_type.value} commentary", fallback_value=fallback)
            except LLMError:
                logger.warning(f"Falling back to templated {comment_type.value} commentary")
                return fallback

        if self.cache is not None:
            self.cache.set(cache_key, comment, namespace="comment")
        return comment

    def _build_messages(self, comment_type: CommentType, context: CommentContext) -> List[dict]:
        return [
            {"role": "system", "content": f"{BASE_SYSTEM_PROMPT} {SYSTEM_PROMPTS[comment_type]}"},
            {"role": "user", "content": build_prompt(comment_type, context)},
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((RateLimitError, APIConnectionError, APITimeoutError)),
        reraise=True
    )
    def _call_openai_with_retry(self, messages: List[dict]) -> str:
        """
        Call the chat API with automatic retry on transient errors.

        Raises:
            OpenAIError: If all retries fail
            ValueError: If the completion is empty
        """
        logger.debug("Calling OpenAI API...")
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        content = completion.choices[0].message.content
        if not content or not content.strip():
            raise ValueError("Empty completion from API")

        logger.debug("OpenAI API call successful")
        return content.strip()
