import asyncio
import sys
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger

from locus.clients import GeoHttpClient
from locus.config import BATCH_SIZE, INPUT_CSV, LOG_LEVEL, OUTPUT_JSONL
from locus.errors import MalformedInputError
from locus.pipeline import estimate_client
from locus.request_context import RequestContext, build_request_context
from locus.sinks import JsonlSink

# CSV column -> request header
HEADER_COLUMNS = {
    "user_agent": "user-agent",
    "accept_language": "accept-language",
    "accept_encoding": "accept-encoding",
    "x_forwarded_for": "x-forwarded-for",
    "referer": "referer",
}

# CSV column -> client-declared metadata key
METADATA_COLUMNS = {
    "screen_resolution": "screenResolution",
    "timezone": "timezone",
    "language": "language",
    "color_depth": "colorDepth",
    "pixel_ratio": "pixelRatio",
    "hardware_concurrency": "hardwareConcurrency",
    "device_memory": "deviceMemory",
    "downlink": "downlink",
    "rtt": "rtt",
    "effective_type": "effectiveType",
    "screen_time": "screenTime",
    "tracking_id": "trackingId",
    "tracking_count": "trackingCount",
}


def load_requests_from_csv(file_path: str, nrows: Optional[int] = None) -> List[RequestContext]:
    """Load request samples from CSV and convert them to RequestContext objects."""
    df = pd.read_csv(file_path, nrows=nrows)
    contexts = []
    for idx, row in df.iterrows():
        # Helper to safely extract values from pandas Series, converting NaN to None
        def safe_get(col):
            if col not in row.index:
                return None
            val = row[col]
            if pd.isna(val):
                return None
            return val

        headers: Dict[str, Any] = {}
        for col, name in HEADER_COLUMNS.items():
            val = safe_get(col)
            if val is not None:
                headers[name] = str(val)

        body: Dict[str, Any] = {}
        for col, key in METADATA_COLUMNS.items():
            val = safe_get(col)
            if val is not None:
                body[key] = val

        try:
            contexts.append(build_request_context(headers, remote_addr=safe_get("ip"), body=body))
        except MalformedInputError as e:
            logger.warning(f"Skipping row {idx}: {e}")
    return contexts


def batch_iter(contexts: List[RequestContext], batch_size: int):
    """
    Yield index and RequestContext slices of size `batch_size` for batched processing.
    """
    n = len(contexts)
    for i in range(0, n, batch_size):
        yield i, contexts[i:i + batch_size]


async def main():
    """
    Orchestrate the batch estimation run.

    - Loads request samples from the input CSV.
    - Estimates each batch concurrently.
    - Appends every composite document to the output JSON-lines file.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    all_requests = load_requests_from_csv(INPUT_CSV)

    # Initialize output file
    sink = JsonlSink(OUTPUT_JSONL)
    sink.reset()

    try:
        for start_idx, batch in batch_iter(all_requests, BATCH_SIZE):
            logger.info(f"Processing rows {start_idx}..{start_idx + len(batch) - 1}")

            # Process all requests in the batch in parallel
            results = await asyncio.gather(*[estimate_client(ctx, sink=sink) for ctx in batch])

            for result in results:
                logger.info(
                    f"{result.ip}: {result.location.record.city}, {result.location.record.country} "
                    f"| stealth {result.stealth.confidence}% ({result.stealth.accuracy_band})"
                )
    finally:
        # Cleanup: close the shared session to prevent unclosed connector warnings
        await GeoHttpClient().close()


if __name__ == "__main__":
    asyncio.run(main())
