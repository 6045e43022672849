"""
Device fingerprint derived from declared client attributes.

The uniqueness score is a length-based entropy heuristic. It does not
guarantee that distinct clients get distinct fingerprints.
"""

import hashlib
import math
from typing import Any, List, Optional

from locus.models import Fingerprint
from locus.request_context import RequestContext

ABSENT = "unknown"
DELIMITER = "|"


def _component(value: Any) -> str:
    if value is None:
        return ABSENT
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or ABSENT


def fingerprint_components(context: RequestContext) -> List[str]:
    """
    The ten components in hashing order: user agent, screen resolution,
    timezone, language, color depth, pixel ratio, hardware concurrency,
    device memory, accept-encoding, accept-language.
    """
    metadata = context.metadata
    language: Optional[str] = metadata.language or context.accept_language
    return [
        _component(context.user_agent),
        _component(metadata.screen_resolution),
        _component(metadata.timezone),
        _component(language),
        _component(metadata.color_depth),
        _component(metadata.pixel_ratio),
        _component(metadata.hardware_concurrency),
        _component(metadata.device_memory),
        _component(context.accept_encoding),
        _component(context.accept_language),
    ]


def confidence_percent(components: List[str]) -> int:
    present = sum(1 for c in components if c != ABSENT)
    return int(math.floor(100.0 * present / len(components) + 0.5))


def uniqueness_score(components: List[str]) -> int:
    score = sum(len(c) * 0.1 for c in components if c != ABSENT)
    return min(100, int(math.floor(score + 0.5)))


def generate_fingerprint(context: RequestContext) -> Fingerprint:
    """
    Hash the declared attributes of one request with SHA-256.

    Args:
        context (RequestContext): Request whose headers and metadata are fingerprinted.

    Returns:
        Fingerprint: Lowercase hex digest, presence flags, confidence and uniqueness heuristics.
    """
    components = fingerprint_components(context)
    digest = hashlib.sha256(DELIMITER.join(components).encode("utf-8")).hexdigest()

    metadata = context.metadata
    flags = {
        "userAgent": context.user_agent is not None,
        "screen": metadata.screen_resolution is not None,
        "timezone": metadata.timezone is not None,
        "language": metadata.language is not None,
        "colorDepth": metadata.color_depth is not None,
        "hardware": metadata.hardware_concurrency is not None or metadata.device_memory is not None,
        "headers": context.accept_encoding is not None and context.accept_language is not None,
    }
    return Fingerprint(
        hash_hex=digest,
        presence_flags=flags,
        confidence_percent=confidence_percent(components),
        uniqueness_score=uniqueness_score(components),
    )
