import os
import re
import json
import datetime as dt
import logging
from decimal import Decimal, InvalidOperation
from logging.handlers import TimedRotatingFileHandler
from typing import Optional, Any, Dict, List

import requests
from jsonschema import validate, Draft202012Validator
from jsonschema.exceptions import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from pydantic import TypeAdapter, HttpUrl

# ---------- Time helpers ----------

def now_utc():
    return dt.datetime.now(dt.timezone.utc)

# ---------- Number helpers ----------

def to_decimal(value: Any) -> Decimal:
    """Convert a config/payload value into a ``Decimal`` without float noise.

    Floats go through ``str`` so that ``0.1`` stays ``Decimal("0.1")``.
    Raises ``ValueError`` for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        out = value
    else:
        try:
            out = Decimal(str(value).strip())
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if not out.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return out

# ---------- URL helpers ----------

_HTTP_URL_ADAPTER = TypeAdapter(HttpUrl)

def normalize_http_url(value: Any) -> Optional[str]:
    """Try to normalize a value into a valid http(s) base URL string.

    - Trims whitespace and trailing slashes
    - Adds scheme when missing (defaults to https://)
    Returns normalized string on success; otherwise None.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if s.startswith("//"):
        s = "https:" + s
    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", s):
        s = "https://" + s
    try:
        _HTTP_URL_ADAPTER.validate_python(s)
    except Exception:
        return None
    return s.rstrip("/")

# ---------- Config validation ----------

def load_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

def validate_config(cfg: dict):
    here = os.path.dirname(os.path.abspath(__file__))
    schema_path = os.path.join(here, "schemas", "config.schema.json")
    schema = json.loads(load_file(schema_path))
    try:
        validate(instance=cfg, schema=schema, cls=Draft202012Validator)
    except ValidationError as e:
        raise ValueError(f"Config validation error: {e.message} at {list(e.path)}") from e

# ---------- Output writer ----------

def _fmt(d: Decimal) -> str:
    return format(d.normalize(), "f") if d == d.to_integral_value() else str(d)

def render_md(rows: List[Dict[str, Any]], title: str) -> str:
    lines = [f"# {title}", ""]
    if not rows:
        lines.append("No items above their allowance.")
        return "\n".join(lines) + "\n"
    lines.append("| item | group | category | weight | allowed | excess |")
    lines.append("|---|---|---|---|---|---|")
    for r in rows:
        lines.append(
            f"| {r['item_id']} | {r['group']} | {r['category']} "
            f"| {r['weight']} | {r['allowed_weight']} | {r['excess']} |"
        )
    return "\n".join(lines) + "\n"

def result_rows(results: dict) -> List[Dict[str, Any]]:
    """Flatten an item -> result mapping into JSON-friendly rows."""
    rows = []
    for item, res in results.items():
        rows.append({
            "item_id": item.item_id,
            "group": item.group,
            "category": item.category,
            "weight": _fmt(item.weight),
            "allowed_weight": _fmt(res.allowed_weight),
            "excess": _fmt(res.excess),
        })
    rows.sort(key=lambda r: str(r["item_id"]))
    return rows

def write_output(results: dict, out_cfg: dict, title: str = "Excess weight report"):
    out_dir = out_cfg["dir"]
    formats = out_cfg.get("formats", ["json"])
    os.makedirs(out_dir, exist_ok=True)
    now_local = dt.datetime.now().astimezone()
    ts = now_local.strftime("%Y%m%dT%H%M%S%z")
    base = os.path.join(out_dir, f"excess_{ts}")
    rows = result_rows(results)

    generated_files = []

    if "json" in formats:
        json_path = base + ".json"
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump({"title": title, "generated_at": now_utc().isoformat(), "results": rows},
                      f, ensure_ascii=False, indent=2)
        generated_files.append(json_path)

    if "md" in formats:
        md_path = base + ".md"
        with open(md_path, "w", encoding="utf-8") as f:
            f.write(render_md(rows, title))
        generated_files.append(md_path)

    return generated_files

# ---------- Logging ----------

_LOGGER_INITIALIZED = False

class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": dt.datetime.fromtimestamp(record.created, dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _build_logger():
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = os.getenv("LOG_DIR", "logs")
    json_mode = os.getenv("LOG_JSON", "false").lower() == "true"

    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level, logging.INFO))

    ch = logging.StreamHandler()
    ch.setLevel(logger.level)

    fh = TimedRotatingFileHandler(os.path.join(log_dir, "allowance.log"), when="D", backupCount=7, encoding="utf-8")
    fh.setLevel(logger.level)

    if json_mode:
        fmt = JsonFormatter()
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    ch.setFormatter(fmt)
    fh.setFormatter(fmt)
    logger.addHandler(ch)
    logger.addHandler(fh)

    _LOGGER_INITIALIZED = True

def get_logger(name: str = None) -> logging.Logger:
    _build_logger()
    return logging.getLogger(name if name else __name__)

# ---------- Service health wait ----------

@retry(stop=stop_after_attempt(10), wait=wait_exponential(multiplier=1, min=1, max=10),
       retry=retry_if_exception_type((requests.RequestException, AssertionError)))
def wait_for_service(url: str, expect_status: int = 200, timeout: float = 5.0):
    r = requests.get(url, timeout=timeout)
    assert r.status_code == expect_status
    return True
