"""Prompt text for each generation stage."""
import json
from typing import Any, Dict, Iterable, List

from langchain_core.prompts import PromptTemplate

from ..db.schema import TableSchema

DRAFT_TEMPLATE = PromptTemplate.from_template(
    "Return ONLY the PostgreSQL query, no explanations or extra text:\n\n"
    "{prompt}\n\n"
    "PostgreSQL Query:\n"
)

REFINE_TEMPLATE = PromptTemplate.from_template(
    "Generate only the PostgreSQL plain query without any explanation.\n"
    "You should follow the Database Schema:\n"
    "{schema}\n"
    "Query Requirements:\n"
    "- replace the tables and columns names with database schema.\n"
    "- no explanation or extra text only query.\n"
    "- Should follow the schema for column types and constraints.\n\n"
    "Query:\n"
    "{query}\n\n"
    "PostgreSQL Query:\n"
)

FINALIZE_TEMPLATE = PromptTemplate.from_template(
    "Instruction: Generate ONLY a valid PostgreSQL query based on the following context.\n"
    "NO ADDITIONAL TEXT. NO EXPLANATION.\n"
    "PURE SQL QUERY ONLY:\n\n"
    "Context: {query}\n"
    "QUERY:"
)

CHART_TEMPLATE = PromptTemplate.from_template(
    "You are a data visualization expert. Given the following JSON data and user prompt, "
    "generate a comprehensive chart configuration.\n\n"
    "User Prompt: {intent}\n\n"
    "Input Data (JSON): {data}\n\n"
    "Guidelines for Chart Configuration:\n"
    "1. Analyze the data structure and content\n"
    "2. Choose the most appropriate chart type\n"
    "3. Select meaningful x and y axis data\n"
    "4. Create descriptive labels\n"
    "5. Provide insights about the data visualization\n\n"
    "Return a JSON configuration with these fields:\n"
    "- chartType ({chart_types})\n"
    "- xLabel (x-axis label)\n"
    "- yLabel (y-axis label)\n"
    "- labels (x-axis categories)\n"
    "- values (y-axis numeric values)\n"
    "- title (chart title)\n"
    "- insights (optional explanation)\n\n"
    "IMPORTANT: Return ONLY a valid JSON matching this structure."
)


def render_schema(catalog: Iterable[TableSchema]) -> str:
    lines = ["Database Schema:"]
    for table in catalog:
        lines.append(f"- {table.name}: {table.description}")
        cols = []
        for col in table.columns:
            kind = col.type if col.nullable else f"{col.type} NOT NULL"
            cols.append(f"{col.name} ({kind})")
        lines.append("  Columns: " + ", ".join(cols))
    return "\n".join(lines) + "\n"


def draft_prompt(prompt: str) -> str:
    return DRAFT_TEMPLATE.format(prompt=prompt)


def refine_prompt(query: str, catalog: Iterable[TableSchema]) -> str:
    return REFINE_TEMPLATE.format(schema=render_schema(catalog), query=query)


def finalize_prompt(query: str) -> str:
    return FINALIZE_TEMPLATE.format(query=query)


def chart_prompt(rows: List[Dict[str, Any]], intent: str, chart_types: Iterable[str]) -> str:
    data = json.dumps(rows, default=str, ensure_ascii=False)
    return CHART_TEMPLATE.format(intent=intent, data=data, chart_types="/".join(chart_types))
