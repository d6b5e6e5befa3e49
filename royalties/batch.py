"""
Batch Runner

Generates statements for many contracts on a bounded worker pool. Calculations
for the same contract are serialized by the ledger lock; lock contention and
stale advance state are retried with exponential backoff, and any other
failure is recorded against its contract while the rest of the batch carries on.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

from .config import EngineSettings
from .errors import ConcurrencyError, RoyaltyEngineError
from .models import CalculationRecord, CalculationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItemResult:
    contract_id: str
    success: bool
    attempts: int
    record: CalculationRecord | None = None
    error_kind: str | None = None
    error: str | None = None

    @property
    def net_payable(self) -> Decimal | None:
        return self.record.net_payable if self.record else None

    def to_dict(self) -> dict:
        return {
            "contract_id": self.contract_id,
            "success": self.success,
            "attempts": self.attempts,
            "record_id": self.record.record_id if self.record else None,
            "net_payable": str(self.net_payable) if self.record else None,
            "error_kind": self.error_kind,
            "error": self.error,
        }


@dataclass
class BatchSummary:
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [r for r in self.results if not r.success]

    def to_dict(self) -> dict:
        return {
            "total": len(self.results),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [r.to_dict() for r in self.results],
        }


class BatchRunner:
    """Runs RoyaltyProcessor.calculate over many requests concurrently."""

    def __init__(self, processor, settings: EngineSettings | None = None, sleep=time.sleep):
        self.processor = processor
        self.settings = settings or processor.settings
        self.sleep = sleep

    def run(self, requests: list[CalculationRequest]) -> BatchSummary:
        """Calculate every request. Results come back in request order."""
        if not requests:
            return BatchSummary()

        workers = min(self.settings.batch_max_workers, len(requests))
        logger.info(f"Starting batch of {len(requests)} calculations on {workers} workers")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._run_one, request) for request in requests]
            summary = BatchSummary(results=[f.result() for f in futures])

        logger.info(f"Batch finished: {len(summary.succeeded)} succeeded, {len(summary.failed)} failed")
        return summary

    def _run_one(self, request: CalculationRequest) -> BatchItemResult:
        contract_id = request.contract.contract_id
        attempt = 0

        while True:
            attempt += 1
            try:
                record = self.processor.calculate(request)
                return BatchItemResult(contract_id=contract_id, success=True, attempts=attempt, record=record)

            except ConcurrencyError as e:
                if attempt > self.settings.max_retries:
                    return self._failure(contract_id, attempt, e.kind, e.message)
                delay = self.settings.retry_backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"Contract {contract_id} busy (attempt {attempt}), retrying in {delay}s")
                self.sleep(delay)

            except RoyaltyEngineError as e:
                return self._failure(contract_id, attempt, e.kind, e.message)

            except PermissionError as e:
                return self._failure(contract_id, attempt, "permission", str(e))

            except Exception as e:
                logger.exception(f"Unexpected error calculating contract {contract_id}")
                return self._failure(contract_id, attempt, "internal", str(e))

    @staticmethod
    def _failure(contract_id: str, attempts: int, kind: str, message: str) -> BatchItemResult:
        logger.error(f"Contract {contract_id} failed after {attempts} attempt(s): {kind}: {message}")
        return BatchItemResult(
            contract_id=contract_id,
            success=False,
            attempts=attempts,
            error_kind=kind,
            error=message,
        )
