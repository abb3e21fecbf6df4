#!/usr/bin/env python3
"""
Batch parser for running many filenames through one FilenameParser.

Filenames are processed in fixed-size batches, either sequentially or on a
thread pool. The keyword table is read-only, so every worker shares it. A bad
item is recorded in ``BatchResult.errors`` and the batch carries on.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .element import Element
from .options import Options
from .pipeline import FilenameParser


@dataclass
class ParsedFile:
    filename: str
    elements: List[Element]


@dataclass
class BatchResult:
    total_files: int
    parsed_files: int
    failed_files: int
    results: List[ParsedFile] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    processing_time: float = 0.0
    files_per_second: float = 0.0


class BatchParser:
    def __init__(self, options: Optional[Options] = None, batch_size: int = 100, max_workers: int = 4) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.parser = FilenameParser(options)
        self.batch_size = batch_size
        self.max_workers = max_workers

        self.logger = logging.getLogger(__name__)

    def _batches(self, filenames: Sequence[Any]) -> List[List[Any]]:
        return [list(filenames[i : i + self.batch_size]) for i in range(0, len(filenames), self.batch_size)]

    def parse_many(
        self,
        filenames: Sequence[Any],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BatchResult:
        """
        Parse filenames one batch after another.

        Args:
            filenames: Filenames to parse
            progress_callback: Called with (processed, total) after each batch

        Returns:
            BatchResult with results in input order
        """
        start_time = time.time()
        total_files = len(filenames)
        results: List[ParsedFile] = []
        errors: List[Dict[str, Any]] = []
        processed_count = 0

        self.logger.info("Starting batch parsing of %s files", total_files)

        for batch_number, batch in enumerate(self._batches(filenames), 1):
            self.logger.debug("Parsing batch %s (%s files)", batch_number, len(batch))
            batch_results, batch_errors = self._parse_batch(batch, offset=processed_count)
            results.extend(batch_results)
            errors.extend(batch_errors)

            processed_count += len(batch)
            if progress_callback:
                progress_callback(processed_count, total_files)

        return self._finish(total_files, results, errors, start_time)

    def parse_many_parallel(
        self,
        filenames: Sequence[Any],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BatchResult:
        """
        Parse filenames with batches spread over a thread pool.

        Results are put back in input order regardless of completion order.

        Args:
            filenames: Filenames to parse
            progress_callback: Called with (processed, total) as batches complete

        Returns:
            BatchResult with results in input order
        """
        start_time = time.time()
        total_files = len(filenames)
        batches = self._batches(filenames)

        collected: Dict[int, List[ParsedFile]] = {}
        errors: List[Dict[str, Any]] = []
        processed_count = 0

        self.logger.info("Starting parallel parsing of %s files on %s workers", total_files, self.max_workers)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_batch = {
                executor.submit(self._parse_batch, batch, offset=number * self.batch_size): (number, batch)
                for number, batch in enumerate(batches)
            }

            for future in as_completed(future_to_batch):
                number, batch = future_to_batch[future]
                batch_results, batch_errors = future.result()
                collected[number] = batch_results
                errors.extend(batch_errors)

                processed_count += len(batch)
                if progress_callback:
                    progress_callback(processed_count, total_files)

        results = [parsed for number in sorted(collected) for parsed in collected[number]]
        errors.sort(key=lambda error: error["index"])
        return self._finish(total_files, results, errors, start_time)

    def _parse_batch(self, batch: Sequence[Any], *, offset: int):
        results: List[ParsedFile] = []
        errors: List[Dict[str, Any]] = []
        for position, filename in enumerate(batch):
            try:
                elements = self.parser.parse(filename)
            except TypeError as exc:
                self.logger.warning("Skipping item %s: %s", offset + position, exc)
                errors.append({"index": offset + position, "filename": repr(filename), "error": str(exc), "type": "input"})
                continue
            results.append(ParsedFile(filename=filename, elements=elements))
        return results, errors

    def _finish(self, total_files: int, results: List[ParsedFile], errors: List[Dict[str, Any]], start_time: float) -> BatchResult:
        processing_time = time.time() - start_time
        files_per_second = (total_files / processing_time) if processing_time > 0 else 0.0

        self.logger.info(
            "Parsed %s of %s files in %.3fs (%s failed)",
            len(results), total_files, processing_time, len(errors),
        )
        return BatchResult(
            total_files=total_files,
            parsed_files=len(results),
            failed_files=len(errors),
            results=results,
            errors=errors,
            processing_time=processing_time,
            files_per_second=files_per_second,
        )
