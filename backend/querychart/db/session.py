import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine, text

from ..core.config import settings
from ..core.context import RequestContext
from ..core.errors import ExecutionError

log = logging.getLogger(__name__)

Row = Dict[str, Any]

@lru_cache(maxsize=1)
def get_engine():
    return create_engine(
        settings.database_url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,
    )

def ping() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        log.warning("database ping failed: %s", e)
        return False

def decode_value(value: Any) -> Any:
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value

def to_rows(columns: Sequence[str], records: Sequence[Sequence[Any]]) -> List[Row]:
    return [
        {col: decode_value(val) for col, val in zip(columns, record)}
        for record in records
    ]

class SQLExecutor:
    """Runs finalized statements on the pooled engine."""

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def execute(
        self, statement: str, ctx: Optional[RequestContext] = None
    ) -> Tuple[List[str], List[Row]]:
        if ctx is not None:
            ctx.check("execute")
        try:
            with Session(self.engine) as session:
                self._apply_timeout(session, ctx)
                res = session.exec(text(statement))
                if not res.returns_rows:
                    session.commit()
                    return [], []
                columns = list(res.keys())
                rows = to_rows(columns, res.fetchall())
        except SQLAlchemyError as e:
            log.warning("query execution failed: %s", e)
            raise ExecutionError(f"error executing query: {e.__class__.__name__}", "execute") from e
        return columns, rows

    def _apply_timeout(self, session: Session, ctx: Optional[RequestContext]) -> None:
        if ctx is None or self.engine.dialect.name != "postgresql":
            return
        left = ctx.remaining()
        if left is None:
            return
        ms = max(int(left * 1000), 1)
        session.exec(text(f"SET LOCAL statement_timeout = {ms}"))
