"""Query synthesis stages: draft, schema refine and finalize.

Each stage is one text-generation round-trip followed by lexical cleanup and
a leading-keyword check. Nothing here parses SQL; ``check_grammar`` is an
optional extra gate backed by sqlglot.
"""
import logging
import re
from typing import Iterable, List, Optional

import sqlglot
from sqlglot.errors import ParseError

from ..core.context import RequestContext
from ..core.errors import (
    EmptyGenerationError,
    ExtractionError,
    InvalidStatementError,
    PipelineError,
    SafetyRejection,
)
from ..db.schema import TableSchema
from . import prompts
from .provider import (
    DRAFT_PARAMS,
    FINALIZE_PARAMS,
    REFINE_PARAMS,
    GenerationParameters,
    InferenceClient,
)

log = logging.getLogger(__name__)

STATEMENT_KEYWORDS = ("select", "insert", "update", "delete", "with")
DENYLIST = ("DROP", "DELETE", "UPDATE", "ALTER", "TRUNCATE")

_KW = "|".join(k.upper() for k in STATEMENT_KEYWORDS)
_FENCE_OPEN = re.compile(r"^```(?:[\w+-]+[ \t]*\n|\s*)")
_FENCE_CLOSE = re.compile(r"\n?```$")

# Keyword through the first statement delimiter, else keyword to end of text.
# Upper-case keywords are tried first so narration like "here is the select
# you asked for" does not win over the statement itself.
_EXTRACTORS = [
    re.compile(rf"\b(?:{_KW})\b.*?;", re.S),
    re.compile(rf"\b(?:{_KW})\b.*", re.S),
    re.compile(rf"\b(?:{_KW})\b.*?;", re.S | re.I),
    re.compile(rf"\b(?:{_KW})\b.*", re.S | re.I),
]
_ANCHOR = re.compile(rf"^.*?\b({_KW})\b", re.S | re.I)
_QUOTES = ('"', "'")


def preview(text: str, limit: int = 160) -> str:
    compact = " ".join(text.split())
    return compact if len(compact) <= limit else compact[: limit - 3] + "..."


def first_candidate(candidates: List[str], stage: str) -> str:
    if not candidates:
        raise EmptyGenerationError("no text generated", stage)
    return candidates[0] or ""


def strip_fences(text: str) -> str:
    text = text.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def validate_statement(text: str, stage: str) -> str:
    if not text:
        raise EmptyGenerationError("generated query is empty", stage)
    if not text.lower().startswith(STATEMENT_KEYWORDS):
        raise InvalidStatementError(
            f"generated text does not appear to be a valid SQL query: {preview(text)}", stage
        )
    return text


def clean_statement(raw: str, stage: str) -> str:
    return validate_statement(strip_fences(raw), stage)


def _strip_stray(text: str) -> str:
    prev = None
    while text != prev:
        prev = text
        text = text.strip().strip("`")
    return text


def _trim_stray_quotes(text: str) -> str:
    text = _strip_stray(text)
    changed = True
    while changed and text:
        changed = False
        for q in _QUOTES:
            if text.count(q) % 2 and text.endswith(q):
                text = _strip_stray(text[:-1])
                changed = True
            elif text.count(q) % 2 and text.startswith(q):
                text = _strip_stray(text[1:])
                changed = True
    return text


def extract_statement(raw: str, stage: str = "finalize") -> str:
    """Pull one statement out of noisy model text.

    Applying it to its own output returns the same string.
    """
    match = None
    for pattern in _EXTRACTORS:
        match = pattern.search(raw)
        if match:
            break
    if match is None:
        raise ExtractionError("could not extract a valid query from the model response", stage)
    text = _trim_stray_quotes(match.group(0))
    text = _ANCHOR.sub(r"\1", text, count=1)
    return validate_statement(collapse_whitespace(text), stage)


def generate_text(
    client: InferenceClient,
    prompt: str,
    params: GenerationParameters,
    stage: str,
    ctx: Optional[RequestContext],
) -> str:
    if ctx is not None:
        ctx.check(stage)
    try:
        candidates = client.generate(prompt, params, ctx)
    except PipelineError as e:
        e.stage = e.stage or stage
        raise
    raw = first_candidate(candidates, stage)
    log.debug("%s raw output: %s", stage, preview(raw))
    return raw


def draft_query(client: InferenceClient, prompt: str, ctx: Optional[RequestContext] = None) -> str:
    raw = generate_text(client, prompts.draft_prompt(prompt), DRAFT_PARAMS, "draft", ctx)
    return clean_statement(raw, "draft")


def refine_query(
    client: InferenceClient,
    query: str,
    catalog: Iterable[TableSchema],
    ctx: Optional[RequestContext] = None,
) -> str:
    raw = generate_text(client, prompts.refine_prompt(query, catalog), REFINE_PARAMS, "refine", ctx)
    return clean_statement(raw, "refine")


def finalize_query(client: InferenceClient, query: str, ctx: Optional[RequestContext] = None) -> str:
    raw = strip_fences(
        generate_text(client, prompts.finalize_prompt(query), FINALIZE_PARAMS, "finalize", ctx)
    )
    if not raw:
        raise EmptyGenerationError("generated query is empty", "finalize")
    return extract_statement(raw, "finalize")


def ensure_safe(sql: str) -> str:
    # Plain substring match: identifiers such as update_count are rejected too.
    upper = sql.upper()
    for word in DENYLIST:
        if word in upper:
            raise SafetyRejection(f"query contains forbidden operation {word}", "gate")
    return sql


def check_grammar(sql: str, dialect: str = "postgres") -> str:
    try:
        parsed = sqlglot.parse(sql, read=dialect)
    except ParseError as e:
        raise InvalidStatementError(f"query does not parse: {e}", "grammar") from e
    if len([p for p in parsed if p is not None]) != 1:
        raise InvalidStatementError("expected exactly one statement", "grammar")
    return sql
