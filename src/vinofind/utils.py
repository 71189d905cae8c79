"""
Shared helpers: logging setup, text tokenization, id normalization,
prompt-input sanitization and bounded arithmetic.
"""

import logging
import re
import string
from typing import Any, List, Optional

from vinofind.constants import AlgorithmConstants

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Prompt-injection fragments removed from user text before it reaches an LLM
_INJECTION_RE = re.compile(
    "|".join([
        r'ignore[\s\.\,\:\;]+(previous|all|the|above)',
        r'disregard[\s\.\,\:\;]+previous',
        r'(system|assistant)[\s\.\,\:\;]*:',
        r'\[/?INST\]',
        r'<\|(im_start|im_end|system|assistant)\|>',
        r'you\s+are\s+now',
    ]),
    flags=re.IGNORECASE | re.MULTILINE,
)


def tokenize(
    text: Optional[str],
    min_length_exclusive: int = AlgorithmConstants.MIN_TOKEN_LENGTH_EXCLUSIVE
) -> List[str]:
    """
    Lowercase and whitespace-split text, dropping short tokens.

    Surrounding punctuation is stripped so "oak." and "oak" index alike.

    Args:
        text: Raw text (None is treated as empty)
        min_length_exclusive: Tokens of this length or shorter are dropped

    Returns:
        Tokens in input order (duplicates kept)
    """
    if not text:
        return []

    tokens = (raw.strip(string.punctuation) for raw in str(text).lower().split())
    return [t for t in tokens if len(t) > min_length_exclusive]


def id_key(value: Any) -> str:
    """Normalize a record id for lookup so that 1, 1.0 and "1" collide."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def as_id_list(values: Any) -> List[Any]:
    """
    Coerce a selection into a list of ids.

    A single id (string, number or any non-iterable) becomes a one-item
    list; strings are never split into characters.
    """
    if values is None:
        return []
    if isinstance(values, (str, bytes, int, float)):
        return [values]
    try:
        return list(values)
    except TypeError:
        return [values]


def sanitize_text_input(
    text: Optional[str],
    max_length: int = AlgorithmConstants.MAX_TEXT_INPUT_LENGTH
) -> str:
    """Truncate user text and strip injection fragments and control characters."""
    if not text:
        return ""

    cleaned = _INJECTION_RE.sub('', text[:max_length])
    # Keep newlines and tabs, drop every other non-printable character
    cleaned = ''.join(ch for ch in cleaned if ch.isprintable() or ch in '\n\t')
    return cleaned.strip()


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """numerator / denominator, or `default` when the denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
