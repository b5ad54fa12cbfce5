"""Chart configuration synthesis and Chart.js translation."""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..core.context import RequestContext
from ..core.errors import DecodeError, ExtractionError, MissingFieldError
from ..schemas.chart import CHART_TYPES, ChartConfiguration
from . import prompts
from .nl2sql import generate_text
from .provider import CHART_PARAMS, InferenceClient

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("chartType", "xLabel", "yLabel")
FILL_COLOR = "rgba(59, 130, 246, 0.5)"
GRAPH_TYPES = ["Bar Chart", "Line Chart", "Pie Chart", "Area Chart", "Radar Chart", "Table"]


def parse_chart_configuration(raw: str, stage: str = "chart") -> ChartConfiguration:
    text = raw.strip()
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ExtractionError("could not extract valid JSON from model response", stage)
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise DecodeError(f"failed to parse model response JSON: {e}", stage) from e
    if not isinstance(data, dict):
        raise DecodeError("chart configuration is not an object", stage)

    missing = [f for f in REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        raise MissingFieldError(
            f"invalid chart configuration: missing required fields {', '.join(missing)}", stage
        )
    try:
        config = ChartConfiguration.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"invalid chart configuration: {e.errors()[0]['msg']}", stage) from e

    if len(config.labels) != len(config.values):
        log.warning(
            "chart series length mismatch: %d labels, %d values",
            len(config.labels), len(config.values),
        )
    return config


def generate_chart_configuration(
    client: InferenceClient,
    rows: List[Dict[str, Any]],
    intent: str,
    ctx: Optional[RequestContext] = None,
) -> ChartConfiguration:
    prompt = prompts.chart_prompt(rows, intent, CHART_TYPES)
    raw = generate_text(client, prompt, CHART_PARAMS, "chart", ctx)
    return parse_chart_configuration(raw)


def to_chartjs(config: ChartConfiguration) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    data = {
        "labels": list(config.labels),
        "datasets": [
            {
                "label": config.y_label,
                "data": list(config.values),
                "backgroundColor": FILL_COLOR,
            }
        ],
    }
    options = {
        "responsive": True,
        "plugins": {
            "title": {"display": True, "text": config.title},
        },
        "scales": {
            "x": {"title": {"display": True, "text": config.x_label}},
            "y": {"title": {"display": True, "text": config.y_label}},
        },
    }
    return data, options
