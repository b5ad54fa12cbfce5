import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..core.config import settings
from ..core.context import RequestContext
from ..core.errors import PipelineError
from ..db.schema import DATABASE_SCHEMA, TableSchema
from ..db.session import Row, SQLExecutor
from ..schemas.chart import ChartConfiguration
from . import charts, nl2sql
from .provider import InferenceClient, get_inference_client

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Extra attempts per stage with capped exponential backoff."""

    retries: Dict[str, int] = field(default_factory=dict)
    backoff: float = 0.5
    max_backoff: float = 8.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            retries={
                "draft": settings.DRAFT_RETRIES,
                "refine": settings.REFINE_RETRIES,
                "finalize": settings.FINALIZE_RETRIES,
                "chart": settings.CHART_RETRIES,
            },
            backoff=settings.RETRY_BACKOFF,
            max_backoff=settings.RETRY_BACKOFF_MAX,
        )

    def attempts(self, stage: str) -> int:
        return max(self.retries.get(stage, 0), 0) + 1

    def delay(self, attempt: int) -> float:
        return min(self.backoff * (2 ** (attempt - 1)), self.max_backoff)


@dataclass
class PipelineResult:
    sql: str
    rows: List[Row]
    chart: ChartConfiguration
    chart_config: Dict[str, Any]
    chart_options: Dict[str, Any]


class QueryPipeline:
    """Natural-language prompt to executed SQL and a chart, one stage at a time.

    Every step is callable on its own with explicit inputs. ``run`` chains
    them and stops at the first failure; nothing is executed unless the
    finalized statement clears the safety gate.
    """

    def __init__(
        self,
        client: InferenceClient,
        executor,
        catalog: Sequence[TableSchema] = DATABASE_SCHEMA,
        retry: Optional[RetryPolicy] = None,
        grammar_check: bool = False,
        dialect: str = "postgres",
    ):
        self.client = client
        self.executor = executor
        self.catalog = tuple(catalog)
        self.retry = retry or RetryPolicy()
        self.grammar_check = grammar_check
        self.dialect = dialect

    def _attempt(self, stage: str, fn: Callable[[], T], ctx: Optional[RequestContext]) -> T:
        attempts = self.retry.attempts(stage)
        attempt = 1
        while True:
            try:
                return fn()
            except PipelineError as e:
                if not e.retryable or attempt >= attempts:
                    log.warning("%s failed: %s", stage, e)
                    raise
                wait = self.retry.delay(attempt)
                log.info("%s attempt %d/%d failed (%s), retrying in %.1fs",
                         stage, attempt, attempts, e, wait)
                if ctx is not None:
                    ctx.sleep(wait, stage)
                else:
                    time.sleep(wait)
                attempt += 1

    def draft(self, prompt: str, ctx: Optional[RequestContext] = None) -> str:
        return self._attempt("draft", lambda: nl2sql.draft_query(self.client, prompt, ctx), ctx)

    def refine(self, query: str, ctx: Optional[RequestContext] = None) -> str:
        return self._attempt(
            "refine", lambda: nl2sql.refine_query(self.client, query, self.catalog, ctx), ctx
        )

    def finalize(self, query: str, ctx: Optional[RequestContext] = None) -> str:
        return self._attempt("finalize", lambda: nl2sql.finalize_query(self.client, query, ctx), ctx)

    def gate(self, sql: str) -> str:
        nl2sql.ensure_safe(sql)
        if self.grammar_check:
            nl2sql.check_grammar(sql, self.dialect)
        return sql

    def execute(self, sql: str, ctx: Optional[RequestContext] = None) -> Tuple[List[str], List[Row]]:
        return self.executor.execute(sql, ctx)

    def synthesize_chart(
        self, rows: List[Row], intent: str, ctx: Optional[RequestContext] = None
    ) -> ChartConfiguration:
        return self._attempt(
            "chart",
            lambda: charts.generate_chart_configuration(self.client, rows, intent, ctx),
            ctx,
        )

    def translate_chart(self, config: ChartConfiguration) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        return charts.to_chartjs(config)

    def run(
        self, prompt: str, intent: Optional[str] = None, ctx: Optional[RequestContext] = None
    ) -> PipelineResult:
        log.info("pipeline start: %s", nl2sql.preview(prompt, 80))
        draft = self.draft(prompt, ctx)
        refined = self.refine(draft, ctx)
        sql = self.gate(self.finalize(refined, ctx))
        log.info("final query: %s", sql)
        _, rows = self.execute(sql, ctx)
        chart = self.synthesize_chart(rows, intent or prompt, ctx)
        chart_config, chart_options = self.translate_chart(chart)
        log.info("pipeline done: %d rows, %s chart", len(rows), chart.chart_type)
        return PipelineResult(
            sql=sql,
            rows=rows,
            chart=chart,
            chart_config=chart_config,
            chart_options=chart_options,
        )


def get_pipeline() -> QueryPipeline:
    return QueryPipeline(
        client=get_inference_client(),
        executor=SQLExecutor(),
        retry=RetryPolicy.from_settings(),
        grammar_check=settings.SQL_GRAMMAR_CHECK,
        dialect=settings.SQL_DIALECT,
    )
