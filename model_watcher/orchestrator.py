"""Run orchestration: concurrent scan, diff, persist, log and notify."""

from __future__ import annotations

import os
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .config import ScanConfig, SourceConfig, WatcherConfig
from .engine import Delta, Fetcher, Outcome, ScanLog, StateStore, ThreadPoolManager, diff
from .engine.notify import DispatchReport, NotificationRouter
from .engine.scan_log import scan_totals
from .engine.state import STATE_FILENAME, utc_now
from .infra import JsonDocumentStore
from .logging_conf import get_logger, source_logger


class ScanOrchestrator:
    """Fetch every source concurrently, retrying each one independently."""

    def __init__(
        self,
        fetcher: Fetcher,
        scan_config: ScanConfig | None = None,
        thread_pool: ThreadPoolManager | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.scan_config = scan_config or ScanConfig()
        self.thread_pool = thread_pool or ThreadPoolManager(self.scan_config.max_workers)
        self.sleep = sleep
        self.logger = get_logger("orchestrator")

    def scan(self, sources: Sequence[SourceConfig]) -> dict[str, Outcome]:
        """Return one Outcome per source, keyed and ordered as ``sources``."""

        self.thread_pool.reserve(len(sources))
        futures: dict[str, Future[Outcome]] = {
            source.name: self.thread_pool.submit(self.scan_source, source) for source in sources
        }
        outcomes: dict[str, Outcome] = {}
        for name, future in futures.items():
            try:
                outcomes[name] = future.result()
            except Exception as exc:  # noqa: BLE001
                self.logger.exception("source_task_crashed", source=name)
                outcomes[name] = Outcome.failure(name, f"Unexpected error: {exc}")
        return outcomes

    def scan_source(self, source: SourceConfig) -> Outcome:
        log = source_logger(source.name)
        max_attempts = self.scan_config.retry_attempts + 1
        attempt = 0
        while True:
            attempt += 1
            outcome = self.fetcher.fetch(source, self.scan_config.timeout)
            if outcome.ok or outcome.unconfigured or attempt >= max_attempts:
                break
            log.warning(
                "fetch_retry",
                attempt=attempt,
                max_attempts=max_attempts,
                error=outcome.reason,
            )
            if self.scan_config.retry_delay > 0:
                self.sleep(self.scan_config.retry_delay)
        outcome = outcome.with_attempts(attempt)
        if outcome.ok:
            log.info("source_scanned", records=outcome.record_count, attempts=attempt)
        elif outcome.unconfigured:
            log.info("source_unconfigured", reason=outcome.reason)
        else:
            log.error("source_failed", error=outcome.reason, attempts=attempt)
        return outcome


@dataclass(slots=True)
class RunReport:
    """What one pipeline run observed and did."""

    started_at: datetime
    outcomes: dict[str, Outcome] = field(default_factory=dict)
    deltas: dict[str, Delta] = field(default_factory=dict)
    committed: list[str] = field(default_factory=list)
    commit_failures: list[str] = field(default_factory=list)
    scan_log: Path | None = None
    pruned: int = 0
    dispatch: DispatchReport | None = None

    @property
    def totals(self) -> dict[str, int]:
        return scan_totals(self.outcomes)

    @property
    def ok(self) -> bool:
        """False only when something was configured and all of it failed."""

        configured = [outcome for outcome in self.outcomes.values() if outcome.configured]
        return not configured or any(outcome.ok for outcome in configured)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class Watcher:
    """Wire configuration, storage and delivery into a single ``run()``."""

    def __init__(
        self,
        config: WatcherConfig,
        output_dir: Path,
        environ: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        fetcher: Fetcher | None = None,
        router: NotificationRouter | None = None,
        thread_pool: ThreadPoolManager | None = None,
    ) -> None:
        self.config = config
        self.output_dir = output_dir
        self.environ = environ if environ is not None else os.environ
        self.clock = clock
        self.logger = get_logger("watcher")
        self.fetcher = fetcher or Fetcher(self.environ)
        self.thread_pool = thread_pool or ThreadPoolManager(config.scan.max_workers)
        self.scanner = ScanOrchestrator(self.fetcher, config.scan, self.thread_pool, sleep)
        store = JsonDocumentStore()
        self.state = StateStore(
            output_dir / STATE_FILENAME,
            store=store,
            volatile_fields=config.logging.volatile_fields,
            clock=clock,
        )
        self.scan_log = ScanLog(output_dir, store=store)
        self.router = router or NotificationRouter(config.notifications, self.environ)

    def close(self) -> None:
        self.thread_pool.shutdown()
        self.fetcher.close()

    def __enter__(self) -> "Watcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def run(self) -> RunReport:
        sources = self.config.active_sources
        report = RunReport(started_at=self.clock())
        self.logger.info("scan_started", sources=len(sources))

        self.state.load()
        report.outcomes = self.scanner.scan(sources)

        ignored = self.config.logging.volatile_fields
        for name, outcome in report.outcomes.items():
            if not outcome.ok:
                continue
            delta = diff(self.state.previous(name), outcome.records, ignored)
            report.deltas[name] = delta
            if self.state.commit(name, outcome.records):
                report.committed.append(name)
            else:
                report.commit_failures.append(name)
            if not delta.is_empty:
                source_logger(name).info("source_changed", **delta.summary.as_dict())

        report.scan_log = self.scan_log.write(report.outcomes, report.deltas, report.started_at)
        report.pruned = len(self.scan_log.cleanup(self.config.logging.history_days))
        report.dispatch = self.router.dispatch(sources, report.deltas, report.outcomes)

        self.logger.info("scan_finished", ok=report.ok, **report.totals)
        return report


__all__ = ["RunReport", "ScanOrchestrator", "Watcher"]
