"""
Generic tabular loader for CSV, JSON and REST API sources.

Every public load function returns a LoadResult and never raises: fetch
and parse failures are logged and reported through LoadResult.error with
an empty data list.

Pipeline applied after parsing, each step optional:
    filters -> select -> order_by -> (total counted here) -> offset/limit
"""

from __future__ import annotations

import functools
import io
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pandas as pd

from .. import config
from .utils import Row, coerce_cell, display_str, parse_number, typed_equal

logger = logging.getLogger(__name__)

_NUMERIC_OPS = ("gt", "gte", "lt", "lte")
_TEXT_OPS = ("contains", "startsWith", "starts_with")


class DataLoadError(Exception):
    """Raised inside the loader when a resource cannot be fetched or parsed."""


@dataclass
class LoadOptions:
    filters: dict[str, Any] | None = None
    select: list[str] | None = None
    order_by: str | None = None
    order_direction: str = "asc"
    limit: int | None = None
    offset: int | None = None

    @classmethod
    def coerce(cls, options: "LoadOptions | dict | None") -> "LoadOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls(**options)


@dataclass
class LoadResult:
    data: list[Row] = field(default_factory=list)
    total: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------
def _is_number(val: Any) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def _matches_operators(row_value: Any, ops: dict[str, Any]) -> bool:
    """All recognised operators must hold; a mapping with none fails."""
    checked = False

    for op in _NUMERIC_OPS:
        if op not in ops or not _is_number(ops[op]):
            continue
        checked = True
        number = parse_number(row_value)
        if number is None:
            return False
        bound = ops[op]
        if op == "gt" and not number > bound:
            return False
        if op == "gte" and not number >= bound:
            return False
        if op == "lt" and not number < bound:
            return False
        if op == "lte" and not number <= bound:
            return False

    for op in _TEXT_OPS:
        if op not in ops or not isinstance(ops[op], str):
            continue
        checked = True
        if row_value is None:
            return False
        text = display_str(row_value).lower()
        needle = ops[op].lower()
        if op == "contains" and needle not in text:
            return False
        if op != "contains" and not text.startswith(needle):
            return False

    return checked


def _matches(row_value: Any, predicate: Any) -> bool:
    if predicate is None or (isinstance(predicate, str) and predicate == ""):
        return True
    if isinstance(predicate, (list, tuple, set, frozenset)):
        return any(typed_equal(row_value, candidate) for candidate in predicate)
    if isinstance(predicate, dict):
        return _matches_operators(row_value, predicate)
    return typed_equal(row_value, predicate)


def apply_filters(rows: Iterable[Row], filters: dict[str, Any]) -> list[Row]:
    """Keep rows that satisfy every column predicate.

    A predicate is a literal (typed equality), a list (membership), or a
    mapping of operators: gt, gte, lt, lte, contains, startsWith.
    None and "" predicates are ignored.
    """
    return [
        row
        for row in rows
        if all(_matches(row.get(column), predicate) for column, predicate in filters.items())
    ]


def select_fields(rows: Iterable[Row], fields_: list[str]) -> list[Row]:
    """Project rows onto `fields_`; columns absent from a row stay absent."""
    return [{f: row[f] for f in fields_ if f in row} for row in rows]


def _compare(a: Any, b: Any) -> int:
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    sa, sb = display_str(a), display_str(b)
    return (sa > sb) - (sa < sb)


def sort_rows(rows: Iterable[Row], order_by: str, direction: str = "asc") -> list[Row]:
    """Stable sort on one column; rows missing the value always sort last."""
    if direction not in ("asc", "desc"):
        raise ValueError(f"order_direction must be 'asc' or 'desc', got {direction!r}")

    present = []
    missing = []
    for row in rows:
        (missing if row.get(order_by) is None else present).append(row)

    sign = -1 if direction == "desc" else 1
    key = functools.cmp_to_key(lambda a, b: sign * _compare(a[order_by], b[order_by]))
    return sorted(present, key=key) + missing


def paginate(rows: list[Row], offset: int | None = None, limit: int | None = None) -> list[Row]:
    start = max(offset or 0, 0)
    if limit is None:
        return rows[start:]
    return rows[start:start + max(limit, 0)]


def run_pipeline(rows: list[Row], options: LoadOptions | dict | None = None) -> tuple[list[Row], int]:
    """Apply filter/select/sort/paginate and return (page, total)."""
    opts = LoadOptions.coerce(options)

    if opts.filters:
        rows = apply_filters(rows, opts.filters)
    if opts.select:
        rows = select_fields(rows, opts.select)
    if opts.order_by:
        rows = sort_rows(rows, opts.order_by, opts.order_direction)

    total = len(rows)

    if opts.offset is not None or opts.limit is not None:
        rows = paginate(rows, opts.offset, opts.limit)

    return rows, total


# ---------------------------------------------------------------------------
# Fetching and parsing
# ---------------------------------------------------------------------------
def _is_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def resolve_path(path: str, base_dir: str | Path | None = None) -> Path:
    """Map a site-relative path such as /data/crm.csv onto the data root."""
    base = Path(base_dir) if base_dir is not None else config.DATA_ROOT
    candidate = base / path.lstrip("/")
    if not candidate.exists() and Path(path).is_absolute() and Path(path).exists():
        return Path(path)
    return candidate


def _request(
    url: str,
    *,
    client: httpx.Client | None = None,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: Any = None,
) -> httpx.Response:
    owns_client = client is None
    if owns_client:
        client = httpx.Client()
    try:
        kwargs: dict[str, Any] = {"headers": headers}
        if body is not None:
            kwargs["content"] = json.dumps(body)
        response = client.request(method.upper(), url, **kwargs)
    finally:
        if owns_client:
            client.close()

    if response.is_error:
        raise DataLoadError(f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}")
    return response


def fetch_text(
    path: str,
    *,
    base_dir: str | Path | None = None,
    client: httpx.Client | None = None,
) -> str:
    if _is_url(path):
        return _request(path, client=client).text

    file_path = resolve_path(path, base_dir)
    if not file_path.is_file():
        raise DataLoadError(f"Failed to fetch {path}: Not Found")
    return file_path.read_text(encoding="utf-8-sig")


def parse_csv(text: str) -> list[Row]:
    """Parse CSV text with a header row into typed rows.

    Blank lines are skipped; rows shorter than the header get None for the
    missing fields.
    """
    if not text.strip():
        return []

    df = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        index_col=False,
    )
    return [
        {str(column): coerce_cell(value) for column, value in record.items()}
        for record in df.to_dict(orient="records")
    ]


def _rows_from_json(payload: Any) -> list[Row]:
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = payload.get("data") or []
    else:
        raise DataLoadError(f"Expected a JSON array or object, got {type(payload).__name__}")

    rows = [dict(item) for item in items if isinstance(item, dict)]
    if len(rows) != len(items):
        logger.warning("Skipped %d non-object JSON entries", len(items) - len(rows))
    return rows


def _failure(exc: Exception) -> LoadResult:
    return LoadResult(data=[], total=0, error=str(exc) or type(exc).__name__)


# ---------------------------------------------------------------------------
# Public loaders
# ---------------------------------------------------------------------------
def load_csv(
    path: str,
    options: LoadOptions | dict | None = None,
    *,
    base_dir: str | Path | None = None,
    client: httpx.Client | None = None,
) -> LoadResult:
    """Load a CSV file or URL."""
    try:
        rows = parse_csv(fetch_text(path, base_dir=base_dir, client=client))
        data, total = run_pipeline(rows, options)
    except Exception as exc:
        logger.exception("Error loading CSV %s", path)
        return _failure(exc)

    logger.info("Loaded %d/%d rows from %s", len(data), total, path)
    return LoadResult(data=data, total=total)


def load_json(
    path: str,
    options: LoadOptions | dict | None = None,
    *,
    base_dir: str | Path | None = None,
    client: httpx.Client | None = None,
) -> LoadResult:
    """Load a JSON array, or an object with a "data" array."""
    try:
        payload = json.loads(fetch_text(path, base_dir=base_dir, client=client))
        data, total = run_pipeline(_rows_from_json(payload), options)
    except Exception as exc:
        logger.exception("Error loading JSON %s", path)
        return _failure(exc)

    logger.info("Loaded %d/%d rows from %s", len(data), total, path)
    return LoadResult(data=data, total=total)


def load_api(
    url: str,
    options: LoadOptions | dict | None = None,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: Any = None,
    client: httpx.Client | None = None,
) -> LoadResult:
    """Load rows from a REST endpoint.

    A server-reported "total" in the response object takes precedence over
    the local row count.
    """
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    try:
        response = _request(url, client=client, method=method, headers=request_headers, body=body)
        payload = response.json()
        data, total = run_pipeline(_rows_from_json(payload), options)
    except Exception as exc:
        logger.exception("Error loading API %s", url)
        return _failure(exc)

    if isinstance(payload, dict) and parse_number(payload.get("total")):
        total = int(parse_number(payload["total"]))

    logger.info("Loaded %d/%d rows from %s", len(data), total, url)
    return LoadResult(data=data, total=total)


_LOADERS: dict[str, Callable[..., LoadResult]] = {
    "csv": load_csv,
    "json": load_json,
    "api": load_api,
}


def load_from_path(
    path: str,
    source_type: str = "csv",
    options: LoadOptions | dict | None = None,
    **kwargs,
) -> LoadResult:
    """Load from a direct path with an explicit type: csv, json or api."""
    loader = _LOADERS.get(source_type)
    if loader is None:
        logger.error("Unknown source type %r for %s", source_type, path)
        return LoadResult(error=f"Unknown type: {source_type}")
    if source_type == "api":
        kwargs.pop("base_dir", None)
    return loader(path, options, **kwargs)


def load_data(
    source_id: str,
    options: LoadOptions | dict | None = None,
    *,
    dashboard_config: config.DashboardConfig | None = None,
    **kwargs,
) -> LoadResult:
    """Load a configured data source by id."""
    source = config.get_data_source(source_id, dashboard_config)
    if source is None:
        logger.error('Data source "%s" not found', source_id)
        return LoadResult(error=f'Source "{source_id}" not found')
    if source.type not in _LOADERS:
        return LoadResult(error="Unknown source type")
    return load_from_path(source.path, source.type, options, **kwargs)


def load_many(*loaders: Callable[[], Any], max_workers: int | None = None) -> list[Any]:
    """Run several zero-argument load calls concurrently.

    Results come back in call order. Use functools.partial to bind
    arguments, e.g. load_many(partial(load_data, "crm"), load_calculations).
    """
    if not loaders:
        return []
    with ThreadPoolExecutor(max_workers=max_workers or len(loaders)) as pool:
        futures = [pool.submit(loader) for loader in loaders]
        return [future.result() for future in futures]
