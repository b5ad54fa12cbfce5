import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from querychart.main import app
from querychart.services.pipeline import QueryPipeline, RetryPolicy, get_pipeline


class FakeInference:
    """Returns scripted outputs in order and records every prompt it saw."""

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.calls = []
        self.contexts = []

    def generate(self, prompt, params, ctx=None):
        self.calls.append((prompt, params))
        self.contexts.append(ctx)
        if not self.outputs:
            raise AssertionError("unexpected inference call")
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        if isinstance(out, list):
            return out
        return [out]


class FakeExecutor:
    def __init__(self, columns=None, rows=None):
        self.columns = columns or ["department", "headcount"]
        self.rows = rows if rows is not None else [
            {"department": "Engineering", "headcount": 12},
            {"department": "Sales", "headcount": 7},
        ]
        self.statements = []

    def execute(self, statement, ctx=None):
        self.statements.append(statement)
        return self.columns, self.rows


CHART_JSON = (
    '{"chartType": "bar", "xLabel": "Department", "yLabel": "Headcount", '
    '"labels": ["Engineering", "Sales"], "values": [12, 7], '
    '"title": "Headcount by department", "insights": "Engineering is largest"}'
)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def make_pipeline(executor):
    def _make(*outputs, retry=None, **kwargs):
        return QueryPipeline(FakeInference(*outputs), executor, retry=retry or RetryPolicy(), **kwargs)
    return _make


@pytest_asyncio.fixture(scope="function")
async def client_for():
    """Yields a factory building an HTTP client bound to a given pipeline."""
    clients = []

    async def _client(pipeline, raise_app_exceptions=True):
        app.dependency_overrides[get_pipeline] = pipeline if callable(pipeline) else (lambda: pipeline)
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        ac = AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    yield _client

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()
