# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

from __future__ import annotations
import contextlib
import contextvars
import json as _json
import logging
import logging.handlers
import os
import sys as _sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


REDACT_KEYS = {"DISCORD_TOKEN"}
APP_LOGGERS = ("architect", "common")

run_id_var = contextvars.ContextVar("run_id", default="-")
scope_var = contextvars.ContextVar("scope", default="-")

_SECRETS: set[str] = set()

EXTRA_KEYS = (
    "guild_id",
    "category_id",
    "channel_id",
    "role_id",
    "finding",
    "took_ms",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def register_secret(value: Optional[str]) -> None:
    """Anything registered here is masked in every log line."""
    if value:
        _SECRETS.add(str(value))


def _redact_value(val):
    try:
        s = str(val)
        secrets = set(_SECRETS)
        for k in REDACT_KEYS:
            envv = os.getenv(k)
            if envv:
                secrets.add(envv)
        for secret in secrets:
            if secret in s:
                s = s.replace(secret, "***REDACTED***")
        return s
    except Exception:
        return "<unprintable>"


class RedactFilter(logging.Filter):
    """Injects run context + redacts secrets appearing in args/msg."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.scope = scope_var.get()
        try:
            if isinstance(record.args, dict):
                record.args = {
                    k: _redact_value(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, (tuple, list)):
                new_list = [
                    _redact_value(a) if isinstance(a, str) else a for a in record.args
                ]
                record.args = (
                    tuple(new_list) if isinstance(record.args, tuple) else new_list
                )

            if isinstance(record.msg, str):
                record.msg = _redact_value(record.msg)
        except Exception:
            pass
        return True


LEVEL_MARK = {
    logging.DEBUG: "🧩",
    logging.INFO: "✅",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
}


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        mark = LEVEL_MARK.get(record.levelno, "•")
        ts = _now_iso()
        scope = getattr(record, "scope", "-")
        rid = getattr(record, "run_id", "-")
        msg = super().format(record)
        extras = []
        for k in EXTRA_KEYS:
            v = getattr(record, k, None)
            if v not in (None, "", []):
                extras.append(f"{k}={v}")
        extras_s = f" | {' '.join(extras)}" if extras else ""
        return f"{ts} {mark} {record.levelname:<8} [{scope}] (run={rid}) {msg}{extras_s}"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "time": _now_iso(),
            "lvl": record.levelname,
            "msg": record.getMessage(),
            "scope": getattr(record, "scope", "-"),
            "run_id": getattr(record, "run_id", "-"),
            "logger": record.name,
        }
        for k in EXTRA_KEYS:
            v = getattr(record, k, None)
            if v not in (None, "", []):
                base[k] = v
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return _json.dumps(base, separators=(",", ":"), ensure_ascii=False, default=str)


class ContextAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        for k, v in self.extra.items():
            extra.setdefault(k, v)
        return msg, kwargs


def get_logger(name="architect", **ctx):
    logger = logging.getLogger(name)
    return ContextAdapter(logger, dict(ctx))


def new_run_id() -> str:
    rid = uuid.uuid4().hex[:8]
    run_id_var.set(rid)
    return rid


@contextlib.contextmanager
def log_scope(name: str):
    """Tag every record emitted inside the block with `name`."""
    token = scope_var.set(name)
    try:
        yield
    finally:
        scope_var.reset(token)


def configure_app_logging(
    verbose: bool = False,
    json_output: bool = False,
    log_file: Optional[str] = None,
    stream=None,
):
    """
    Unified logging config with:
    - --json / LOG_FORMAT=JSON for one JSON object per line, else human lines
    - --verbose for DEBUG; LOG_LEVEL overrides either way
    - redaction + run context
    - optional daily-rotated file (7 kept)
    """
    fmt = os.getenv("LOG_FORMAT", "JSON" if json_output else "HUMAN").strip().upper()
    lvl = os.getenv("LOG_LEVEL", "DEBUG" if verbose else "INFO").strip().upper()
    level = getattr(logging, lvl, logging.INFO)

    def _apply(h: logging.Handler):
        if fmt == "JSON":
            h.setFormatter(JSONFormatter("%(message)s"))
        else:
            h.setFormatter(HumanFormatter("%(message)s"))
        h.addFilter(RedactFilter())

    handlers: list[logging.Handler] = []
    h = logging.StreamHandler(stream=stream or _sys.stdout)
    _apply(h)
    handlers.append(h)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.TimedRotatingFileHandler(
            log_file, when="midnight", backupCount=7, encoding="utf-8"
        )
        _apply(fh)
        fh.setLevel(max(level, logging.INFO))
        handlers.append(fh)

    for name in APP_LOGGERS:
        lg = logging.getLogger(name)
        for old in list(lg.handlers):
            lg.removeHandler(old)
            old.close()
        for handler in handlers:
            lg.addHandler(handler)
        lg.propagate = False
        lg.setLevel(level)

    for lib in (
        "discord",
        "discord.client",
        "discord.gateway",
        "discord.state",
        "discord.http",
    ):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return get_logger("architect")
