"""Logging for submitsync, built on logfire.

Every log call becomes a logfire span. Where the spans go is decided by
sinks: the console (rendered by logfire itself), a plain-text file, an
OTLP collector, and logfire.dev. Each sink may keep its own level.

Code anywhere in the package logs through the module-level ``logger``
proxy; it stays silent until setup_logger() installs a real Logger.
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from submitsync.core.base import BaseConfig

# Level names, most verbose first, with their OpenTelemetry severities.
# spew sits below logfire's own trace level.
LEVELS: dict[str, int] = {
    "spew": logs_pb2.SEVERITY_NUMBER_TRACE,
    "trace": logs_pb2.SEVERITY_NUMBER_TRACE3,
    "debug": logs_pb2.SEVERITY_NUMBER_DEBUG,
    "info": logs_pb2.SEVERITY_NUMBER_INFO,
    "warn": logs_pb2.SEVERITY_NUMBER_WARN,
    "error": logs_pb2.SEVERITY_NUMBER_ERROR,
    "fatal": logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes that logfire and OpenTelemetry add on their own
_INTERNAL_ATTRS = frozenset({
    "code.filepath", "code.lineno", "code.function",
    "logfire.msg", "logfire.msg_template", "logfire.level_num",
    "logfire.span_type", "logfire.json_schema",
})
_INTERNAL_PREFIXES = ("otel.", "telemetry.", "service.", "process.")
_SINGLE_LINE = str.maketrans({
    "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t",
})


def severity(span: ReadableSpan) -> int:
    attrs = span.attributes or {}
    return attrs.get("logfire.level_num", LEVELS["info"])


def level_name(severity_number: int) -> str:
    """Most severe level name whose threshold severity_number reaches."""
    name = "unknown"
    for candidate, threshold in LEVELS.items():
        if severity_number >= threshold:
            name = candidate
    return name


class LevelFilteringExporter(SpanExporter):
    """Passes on only spans at or above min_level."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self.min_severity = LEVELS.get(min_level.lower(), LEVELS["info"])

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [s for s in spans if severity(s) >= self.min_severity]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One log destination.

    A sink is configuration until Logger.setup() asks it for a span
    processor. Closing it shuts that processor down.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; unset means the logger level. "
            "One of: " + ", ".join(LEVELS)
        ),
    )
    single_line: bool = Field(
        default=False,
        description="Escape newlines and tabs so each entry is one line",
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description=(
            "Line template over timestamp, level, message, location and "
            "function; unset writes raw JSON spans"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    def render(self, span: ReadableSpan) -> str:
        """One span as text, followed by its custom attributes."""
        if not self.format_template:
            return span.to_json() + os.linesep

        attrs = span.attributes or {}
        message = attrs.get("logfire.msg", span.name)
        if self.single_line:
            message = message.translate(_SINGLE_LINE)
        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")
        try:
            line = self.format_template.format(
                timestamp=datetime.fromtimestamp(
                    span.start_time / 1e9, tz=UTC
                ),
                level=level_name(severity(span)),
                message=message,
                location=f"{filepath}:{lineno}" if filepath else "",
                function=attrs.get("code.function", ""),
            )
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = sorted(
            (key, value) for key, value in attrs.items()
            if key not in _INTERNAL_ATTRS
            and not key.startswith(_INTERNAL_PREFIXES)
        )
        if extra:
            line += " │ " + " ".join(f"{k}={v!r}" for k, v in extra)
        return line + "\n"

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Span processor feeding this sink, or None if logfire owns it."""

    def close(self):
        if self._processor is None:
            return
        # Runs while unwinding from a failed submission too
        with contextlib.suppress(Exception):
            self._processor.shutdown()
        self._processor = None


class ConsoleSink(Sink):
    """Terminal output, rendered by logfire."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class OTLPSink(Sink):
    """Export to an OpenTelemetry collector over gRPC."""

    enabled: bool = Field(default=False, description="Enable OTLP export")
    endpoint: str = Field(
        default="http://localhost:4317", description="OTLP gRPC endpoint"
    )
    insecure: bool = Field(default=True, description="Skip TLS")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers, e.g. API keys"
    )

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter: SpanExporter = OTLPSpanExporter(
            endpoint=self.endpoint,
            insecure=self.insecure,
            headers=self.headers or None,
        )
        if self.level:
            exporter = LevelFilteringExporter(exporter, self.level)
        return BatchSpanProcessor(exporter)


class FileSink(Sink):
    """Plain-text log file, one per run by default."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/submitsync.log",
        description="File path; {log_root} and {run_name} are filled in",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )

        target = Path(self.path.format(log_root=log_root, run_name=run_name))
        target.parent.mkdir(parents=True, exist_ok=True)
        # Line buffered: an aborted submission still leaves its trail
        self._file = open(  # noqa: SIM115
            target, "a", buffering=1, encoding="utf-8"
        )

        exporter = ConsoleSpanExporter(out=self._file, formatter=self.render)
        return SimpleSpanProcessor(
            LevelFilteringExporter(exporter, self.level or "info")
        )

    def close(self):
        super().close()
        if self._file is not None and not self._file.closed:
            self._file.close()


class LogfireSink(Sink):
    """Send spans to logfire.dev."""

    enabled: bool = Field(default=False, description="Enable logfire.dev")
    token: str | None = Field(
        default=None, description="Write token (or LOGFIRE_TOKEN)"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """Logfire front end with one field per sink.

    Usable as a context manager: leaving the block closes every sink,
    which flushes and closes the log file.
    """

    level: str = Field(
        default="info",
        description="Level for sinks that do not set their own",
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    otlp: OTLPSink = Field(default_factory=OTLPSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode="after")
    def _inherit_level(self) -> Logger:
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Create sink processors and (re)configure logfire for a run."""
        import logfire

        extra = []
        for sink in (self.console, self.otlp, self.file, self.logfire):
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_root, run_name)
            if sink._processor is not None:
                extra.append(sink._processor)

        console: logfire.ConsoleOptions | bool = False
        if self.console.enabled:
            console = logfire.ConsoleOptions(
                min_log_level=self.console.level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"submitsync-{run_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=extra or None,
        )

    def _emit(self, level: str, msg: str, attributes: dict):
        import logfire
        logfire.log(LEVELS[level], msg, attributes=attributes or None)

    def spew(self, msg: str, **kwargs):
        """Below trace: per-commit graph walking detail."""
        self._emit("spew", msg, kwargs)

    def trace(self, msg: str, **kwargs):
        self._emit("trace", msg, kwargs)

    def debug(self, msg: str, **kwargs):
        self._emit("debug", msg, kwargs)

    def info(self, msg: str, **kwargs):
        self._emit("info", msg, kwargs)

    def warn(self, msg: str, **kwargs):
        self._emit("warn", msg, kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        self._emit("error", msg, kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager grouping the log calls made inside it."""
        import logfire
        return logfire.span(msg, **kwargs)


class _LoggerProxy:
    """Stand-in for whichever Logger setup_logger() last installed.

    With no logger installed every call does nothing and returns a
    null context, so ``with logger.span(...)`` is always valid.
    """

    def __getattr__(self, name):
        if _current_logger is not None:
            return getattr(_current_logger, name)

        def _silent(*args, **kwargs):  # noqa: ARG001
            return contextlib.nullcontext()
        return _silent

    def __enter__(self):
        if _current_logger is not None:
            _current_logger.__enter__()
        return self

    def __exit__(self, *exc_info):
        if _current_logger is not None:
            return _current_logger.__exit__(*exc_info)
        return False


_current_logger: Logger | None = None

logger = _LoggerProxy()


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    otlp: OTLPSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Install a new global Logger, closing the previous one.

    Config calls this once settings are loaded; tests call it directly
    for console-only output. Sinks left as None get their defaults.
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        otlp=otlp or OTLPSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
