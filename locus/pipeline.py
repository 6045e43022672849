# locus/pipeline.py

from typing import Any, Dict, Optional, Protocol

from loguru import logger

from locus.aggregator import resolve_location
from locus.behavior import build_tracking
from locus.estimators.stealth_orchestrator import stealth_orchestrator
from locus.fingerprint import generate_fingerprint
from locus.models import CompositeResult, Coordinate, ScoredRecord, StealthEstimate
from locus.movement import analyze_movement, compare_locations
from locus.request_context import RequestContext
from locus.security import assess_security


class ResultSink(Protocol):
    def write(self, document: Dict[str, Any]) -> None:
        ...


def current_coordinate(
    context: RequestContext,
    best: ScoredRecord,
    stealth: StealthEstimate,
) -> Optional[Coordinate]:
    """Browser fix first, then the precise provider coordinate, then the stealth coordinate."""
    if context.metadata.browser_location is not None:
        return context.metadata.browser_location
    record = best.record
    if record.has_coordinates:
        return Coordinate(record.latitude, record.longitude, context.timestamp_millis)
    if stealth.latitude is not None and stealth.longitude is not None:
        return Coordinate(stealth.latitude, stealth.longitude, context.timestamp_millis)
    return None


async def estimate_client(
    context: RequestContext,
    previous: Optional[Coordinate] = None,
    sink: Optional[ResultSink] = None,
) -> CompositeResult:
    """
    Run the full estimation pipeline for a single request.

    Args:
        context (RequestContext): Immutable request input.
        previous (Optional[Coordinate]): Prior estimate for the same tracking session.
            Falls back to the client-declared previousLocation.
        sink (Optional[ResultSink]): Receives the finished document synchronously.
            Failures are logged and never affect the result.

    Returns:
        CompositeResult: Precise record, stealth estimate, signals, fingerprint,
                         security screening, session tracking and, when a prior fix exists,
                         movement.
    """
    # 1) Provider fan-out for the best precise record
    best = await resolve_location(context.ip)

    # 2) Five weak signals blended into a permission-free estimate
    stealth, signals = stealth_orchestrator(context, best.record)

    # 3) Identity, request screening and session tracking
    fingerprint = generate_fingerprint(context)
    security = assess_security(context)
    tracking = build_tracking(context)

    # 4) Movement against the prior fix, if the caller has one
    current = current_coordinate(context, best, stealth)
    previous = previous or context.metadata.previous_location
    movement = None
    if previous is not None and current is not None:
        movement = analyze_movement(previous, current)

    comparison = None
    browser = context.metadata.browser_location
    if browser is not None and best.record.has_coordinates:
        comparison = compare_locations(
            browser,
            best.record.latitude,
            best.record.longitude,
            context.metadata.browser_accuracy_m,
        )

    result = CompositeResult(
        timestamp_millis=context.timestamp_millis,
        ip=context.ip,
        location=best,
        stealth=stealth,
        signals=signals,
        fingerprint=fingerprint,
        security=security,
        current=current,
        movement=movement,
        location_comparison=comparison,
        tracking=tracking,
    )

    if sink is not None:
        try:
            sink.write(result.to_dict())
        except Exception as e:
            logger.warning(f"⚠️ Failed to persist result for {context.ip} (continuing): {e}")

    return result
