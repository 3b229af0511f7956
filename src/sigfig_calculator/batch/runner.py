"""Evaluate many expressions in parallel worker processes."""
from multiprocessing import Pipe, Process, cpu_count
from multiprocessing.connection import Connection
from pathlib import Path
import time
from typing import List, Optional, TextIO, Tuple

from pydantic import BaseModel, ConfigDict, Field

from sigfig_calculator.batch.loader import load_expressions
from sigfig_calculator.batch.worker import EvaluationWorker
from sigfig_calculator.common.config import EvaluatorConfig
from sigfig_calculator.common.logger import configure_logging, logger
from sigfig_calculator.common.models import EvaluationRequest, EvaluationResult


class BatchRunner(BaseModel):
    """
    Evaluate a batch of expressions and write one result line per expression.

    Features:
        - Spawns one worker process per expression.
        - Writes results immediately to disk as soon as a worker finishes.
        - Ensures each worker is destroyed immediately after finishing.
        - Handles multiple simultaneous workers up to CPU core count.
    """

    # Allow arbitrary types like multiprocessing.Connection
    model_config = ConfigDict(arbitrary_types_allowed=True)

    output_file: Path = Field(..., description="Path to write computation results")
    config: EvaluatorConfig = Field(default_factory=EvaluatorConfig, description="Evaluator settings")
    max_workers: Optional[int] = Field(default=None, ge=1, description="Upper bound on parallel workers")
    poll_interval: float = Field(default=0.01, gt=0, description="Seconds between checks for finished workers")

    def _spawn_worker(self, expr: str, line_number: int) -> Tuple[Process, Connection, int, str]:
        """
        Spawn an EvaluationWorker for the given expression and return process and pipe.

        :param str expr: Arithmetic expression
        :param int line_number: Line number of expression in input

        :return: Tuple of (Process, parent_pipe, line_number, expression)
        :rtype: Tuple[Process, Connection, int, str]
        """
        parent_conn, child_conn = Pipe()
        worker = EvaluationWorker(conn=child_conn, expression=expr, line_number=line_number, config=self.config)
        process = Process(target=worker.run)
        process.start()
        # The child owns its end now
        child_conn.close()
        return process, parent_conn, line_number, expr

    def _collect_finished_workers(
        self,
        active_workers: List[Tuple[Process, Connection, int, str]],
        f_out: TextIO,
        results: List[EvaluationResult],
    ) -> None:
        """
        Collect results from all finished workers and write them to the output file.

        Finished workers are removed from the active_workers list. A worker that
        exits without sending a result still yields one, tagged ``WorkerCrash``.

        :param list active_workers: List of tuples (Process, Connection, line_number, expression)
        :param TextIO f_out: Open file handle for writing results
        :param list results: Collected results, appended in completion order
        """
        # Iterate in reverse to safely remove finished workers while iterating
        for i in reversed(range(len(active_workers))):
            proc, pipe_conn, line_number, expr = active_workers[i]
            if not proc.is_alive():
                try:
                    result = EvaluationResult.model_validate(pipe_conn.recv())
                except EOFError:
                    logger.error(
                        f"👷💥 Worker {proc.name} (line {line_number}) exited with code {proc.exitcode} without a result"
                    )
                    result = EvaluationResult(
                        expression=expr,
                        line=line_number,
                        error=f"worker exited with code {proc.exitcode}",
                        error_kind="WorkerCrash",
                    )
                finally:
                    pipe_conn.close()
                proc.join()
                active_workers.pop(i)
                results.append(result)

                # Write output immediately
                f_out.write(result.describe() + "\n")
                f_out.flush()

    def run(self, expressions: List[str]) -> List[EvaluationResult]:
        """
        Evaluate every expression in its own worker process.

        Steps:
            1. Validate every expression as an EvaluationRequest before any worker starts.
            2. Spawn worker processes for each expression, respecting max CPU cores.
            3. Write each result to the output file as soon as its worker finishes.
            4. Return all results ordered by line number.

        :param List[str] expressions: Non-empty expressions, line numbers start at 1

        :return: Results ordered by line number
        :rtype: List[EvaluationResult]
        :raises ValidationError: If an expression is empty or blank
        """
        requests: List[EvaluationRequest] = [EvaluationRequest(expression=expr) for expr in expressions]

        configure_logging(self.config.log_level)
        logger.info(f"🚀 Evaluating {len(requests)} expression(s) into {self.output_file}")

        # Limit number of active workers to CPU cores or number of expressions
        max_workers: int = min(self.max_workers or cpu_count(), len(requests))
        active_workers: List[Tuple[Process, Connection, int, str]] = []
        results: List[EvaluationResult] = []

        with self.output_file.open("w", encoding="utf-8") as f_out:
            for line_number, request in enumerate(requests, start=1):
                # Wait until a worker slot is available
                while len(active_workers) >= max_workers:
                    self._collect_finished_workers(active_workers, f_out, results)
                    time.sleep(self.poll_interval)

                active_workers.append(self._spawn_worker(request.expression, line_number))

            # Collect remaining active workers
            while active_workers:
                self._collect_finished_workers(active_workers, f_out, results)
                if active_workers:
                    time.sleep(self.poll_interval)

        failures = sum(1 for result in results if not result.ok)
        logger.info(f"🏁 Batch finished: {len(results) - failures} ok, {failures} failed")
        return sorted(results, key=lambda result: result.line)

    def run_file(self, input_file: Path) -> List[EvaluationResult]:
        """
        Load expressions from a text file or archive and evaluate them.

        :param Path input_file: Plain .txt file or .zip/.tar.xz/.7z archive

        :return: Results ordered by line number
        :rtype: List[EvaluationResult]
        """
        return self.run(load_expressions(input_file))
