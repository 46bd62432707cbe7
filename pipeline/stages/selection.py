"""
Automatic Format Selection
==========================

Measure-then-commit selection: every candidate Format encodes the raw
payload into a byte-counting probe, and only the smallest one is written
for real.
"""

import io
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List

from formats.registry import Format
from .framing import StreamFramer

logger = logging.getLogger(__name__)


class SizeProbe(io.RawIOBase):
    """Write-only sink that counts bytes and retains none of them"""

    def __init__(self):
        self._count = 0

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed SizeProbe")
        n = memoryview(b).nbytes
        self._count += n
        return n

    @property
    def count(self) -> int:
        return self._count


@dataclass
class CandidateTrial:
    """Outcome of probing one candidate Format"""
    format: Format
    size: int  # Framed size, tag byte included
    elapsed: float = 0.0


@dataclass
class SelectionResult:
    """Winner of an automatic selection and the measurements behind it"""
    winner: Format
    size: int
    raw_size: int
    trials: List[CandidateTrial] = field(default_factory=list)

    @property
    def compression_ratio(self) -> float:
        return self.size / self.raw_size if self.raw_size else 1.0

    def report(self) -> str:
        lines = [f"{'Format':<16} {'Size':>12} {'Ratio':>8} {'Time (ms)':>10}"]
        lines.append("-" * 50)
        for trial in self.trials:
            ratio = trial.size / self.raw_size if self.raw_size else 1.0
            marker = " *" if trial.format == self.winner else ""
            lines.append(f"{trial.format.name:<16} {trial.size:>12,} {ratio:>8.3f} "
                         f"{trial.elapsed * 1000:>10.1f}{marker}")
        return "\n".join(lines)


class FormatSelector:
    """
    Picks the candidate Format producing the smallest artifact.

    Candidates are tried in declaration order and ties go to the one
    declared first. Trials may run concurrently (max_workers > 1); each
    owns its own probe and only reads the shared immutable payload, and the
    winner is decided after every trial has reported.
    """

    def __init__(self, framer: StreamFramer, candidates: Iterable, max_workers: int = 1):
        self.framer = framer
        self.candidates = [framer.registry.resolve(fmt) for fmt in candidates]
        if not self.candidates:
            raise ValueError("At least one candidate format is required")
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self.max_workers = max_workers

    def probe(self, raw: bytes, fmt: Format) -> CandidateTrial:
        """Measure the framed size of raw under one Format"""
        probe = SizeProbe()
        start = time.perf_counter()
        with self.framer.open_encoder(probe, fmt) as chain:
            chain.write(raw)
        trial = CandidateTrial(fmt, probe.count, time.perf_counter() - start)
        logger.debug(f"Probe {fmt}: {len(raw):,} -> {trial.size:,} bytes")
        return trial

    def select(self, raw) -> SelectionResult:
        """Probe every candidate and return the smallest"""
        raw = bytes(raw)

        workers = min(self.max_workers, len(self.candidates))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                trials = list(executor.map(lambda fmt: self.probe(raw, fmt), self.candidates))
        else:
            trials = [self.probe(raw, fmt) for fmt in self.candidates]

        best = trials[0]
        for trial in trials[1:]:
            if trial.size < best.size:
                best = trial

        logger.info(f"Selected {best.format} for {len(raw):,} byte payload "
                    f"({best.size:,} bytes, {len(trials)} candidates)")
        return SelectionResult(best.format, best.size, len(raw), trials)

    def select_and_write(self, raw, destination) -> SelectionResult:
        """Select the smallest Format, then encode raw once into destination"""
        raw = bytes(raw)
        result = self.select(raw)
        self.framer.write(raw, destination, result.winner)
        return result
