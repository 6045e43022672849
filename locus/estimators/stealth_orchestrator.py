# locus/estimators/stealth_orchestrator.py

from typing import List, Tuple

from loguru import logger

from locus.estimators.connection_quality import estimate_from_connection
from locus.estimators.device_characteristics import estimate_from_device
from locus.estimators.ip_geolocation import estimate_from_ip
from locus.estimators.network_infrastructure import estimate_from_network
from locus.estimators.stealth_blender import blend_estimates
from locus.estimators.timezone_language import estimate_from_timezone
from locus.models import LocationRecord, SignalEstimate, StealthEstimate
from locus.request_context import RequestContext


def declared_languages(context: RequestContext) -> List[str]:
    """
    Languages in preference order: the client's declared list, then its single
    declared language, then the accept-language header (q-values dropped).
    """
    metadata = context.metadata
    if metadata.languages:
        return list(metadata.languages)
    if metadata.language:
        return [metadata.language]
    header = context.accept_language
    if not header:
        return []
    return [part.split(";")[0].strip() for part in header.split(",") if part.split(";")[0].strip()]


def run_signal_estimators(context: RequestContext, record: LocationRecord) -> List[SignalEstimate]:
    """Run all five estimators over one request. Order is fixed."""
    metadata = context.metadata
    timezone = metadata.timezone
    return [
        estimate_from_ip(record),
        estimate_from_network(record, context.headers),
        estimate_from_timezone(timezone, declared_languages(context)),
        estimate_from_connection(metadata.downlink_mbps, metadata.rtt_ms, metadata.effective_type),
        estimate_from_device(metadata, context.user_agent),
    ]


def stealth_orchestrator(
    context: RequestContext,
    record: LocationRecord,
) -> Tuple[StealthEstimate, List[SignalEstimate]]:
    """
    Orchestrate all signal estimators and blend their output into a single
    permission-free estimate for one request.

    Args:
        context (RequestContext): Request being estimated.
        record (LocationRecord): Best record from the provider aggregator.

    Returns:
        Tuple[StealthEstimate, List[SignalEstimate]]: Blended estimate and the
                                                      contributing signals.
    """
    signals = run_signal_estimators(context, record)
    stealth = blend_estimates(signals)
    logger.debug(
        f"🔍 Stealth estimate for {context.ip}: {stealth.confidence}% ({stealth.accuracy_band}) "
        f"from {[f'{s.algorithm_name}={s.confidence}' for s in signals]}"
    )
    return stealth, signals
