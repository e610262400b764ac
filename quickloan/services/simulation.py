# quickloan/services/simulation.py
"""
Simulated I/O latencies (document upload, KYC processing).
Each call is its own suspension point; cancelling it has no side effects.
"""

import asyncio
import logging
import random

from quickloan.models.loan_schemas import DocumentStatus

logger = logging.getLogger(__name__)


async def simulate_latency(min_seconds: float, max_seconds: float) -> float:
    delay = random.uniform(min_seconds, max_seconds) if max_seconds > 0 else 0.0
    await asyncio.sleep(max(delay, 0.0))
    return delay


async def simulate_upload(doc_key: str, file_name: str, min_seconds: float, max_seconds: float) -> str:
    """Pretend to upload one file; returns the resulting status"""
    if not file_name or not file_name.strip():
        return DocumentStatus.NO_FILE.value

    await simulate_latency(min_seconds, max_seconds)
    logger.info(f"📤 Uploaded (simulated) {doc_key}: {file_name}")
    return DocumentStatus.UPLOADED.value


async def simulate_kyc_processing(seconds: float) -> None:
    logger.info("🔄 KYC processing (simulated)...")
    await asyncio.sleep(max(seconds, 0.0))
