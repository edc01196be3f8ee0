"""Unit tests for observability module."""

import json
import logging
import sys

from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import pytest

from faceted_search.domain.model import Record
from faceted_search.observability import (
    SEARCH_ERRORS,
    JsonFormatter,
    bind_partition,
    configure_logging,
    create_span,
    get_metrics,
    get_metrics_content_type,
    get_trace_context,
    init_tracing,
    set_trace_context,
    tracing as tracing_module,
    track_latency,
)
from faceted_search.observability.context import trace_context, update_span_id
from faceted_search.observability.metrics import COMPILE_LATENCY
from faceted_search.search.document_builder import DocumentBuilder
from faceted_search.search.query_compiler import QueryCompiler


@pytest.fixture
def span_exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    monkeypatch.setitem(tracing_module._tracer_holder, "tracer", None)
    init_tracing("faceted-search-test", span_processors=[SimpleSpanProcessor(exporter)])
    return exporter


@pytest.fixture(autouse=True)
def reset_trace_context():
    token = trace_context.set(None)
    yield
    trace_context.reset(token)


def _record(msg, **extra):
    record = logging.LogRecord(
        name="faceted_search.search.query_compiler",
        level=logging.INFO,
        pathname="query_compiler.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJsonFormatter:
    def test_format_includes_trace_context(self):
        set_trace_context("a" * 32, "b" * 16, partition="2")

        data = json.loads(JsonFormatter().format(_record("compiled")))

        assert data["message"] == "compiled"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "a" * 32
        assert data["span_id"] == "b" * 16
        assert data["partition"] == "2"
        assert data["component"] == "query_compiler"

    def test_extra_fields_are_redacted(self):
        data = json.loads(JsonFormatter().format(_record("login", api_key="abc", facet="tag")))

        assert data["api_key"] == "[REDACTED]"
        assert data["facet"] == "tag"

    def test_long_messages_are_truncated(self):
        data = json.loads(JsonFormatter().format(_record("x" * 3000)))

        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_unserializable_extras(self):
        data = json.loads(JsonFormatter().format(_record("sets", groups={"b", "a"}, error=ValueError("bad"))))

        assert data["groups"] == ["a", "b"]
        assert data["error"] == "bad"

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed")
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


@pytest.mark.unit
def test_configure_logging(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    for name in ("faceted_search.search", "elastic_transport", "elasticsearch"):
        named = logging.getLogger(name)
        monkeypatch.setattr(named, "level", named.level)

    configure_logging("debug", json_output=False, logger_levels={"faceted_search.search": "warning"})

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, JsonFormatter)
    assert logging.getLogger("elastic_transport").level == logging.WARNING
    assert logging.getLogger("faceted_search.search").level == logging.WARNING

    configure_logging("info")

    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


@pytest.mark.unit
class TestTraceContext:
    def test_generated_when_missing(self):
        ctx = get_trace_context()

        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16
        assert get_trace_context() is ctx

    def test_update_span_id_keeps_trace(self):
        set_trace_context("t" * 32, "s" * 16)

        update_span_id("n" * 16)

        assert get_trace_context() == {"trace_id": "t" * 32, "span_id": "n" * 16}

    def test_update_span_id_adopts_trace_when_missing(self):
        update_span_id("n" * 16, trace_id="t" * 32)

        assert get_trace_context() == {"trace_id": "t" * 32, "span_id": "n" * 16}

    def test_update_span_id_ignores_trace_when_present(self):
        set_trace_context("t" * 32, "s" * 16)

        update_span_id("n" * 16, trace_id="x" * 32)

        assert get_trace_context()["trace_id"] == "t" * 32

    def test_bind_partition_is_scoped(self):
        set_trace_context("t" * 32, "s" * 16)

        with bind_partition("3"):
            assert get_trace_context()["partition"] == "3"

        assert "partition" not in get_trace_context()


class _CapturingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.setFormatter(JsonFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


@pytest.mark.unit
def test_compiler_logs_carry_partition(field_config):
    compiler_logger = logging.getLogger("faceted_search.search.query_compiler")
    handler = _CapturingHandler()
    previous_level = compiler_logger.level
    compiler_logger.setLevel(logging.DEBUG)
    compiler_logger.addHandler(handler)
    try:
        QueryCompiler("7").compile("solar", {"unknown": ["x"]}, field_config)
    finally:
        compiler_logger.removeHandler(handler)
        compiler_logger.setLevel(previous_level)

    (line,) = [line for line in handler.lines if "unknown facet" in line["message"]]
    assert line["partition"] == "7"
    assert "partition" not in get_trace_context()


@pytest.mark.unit
class TestSpans:
    def test_create_span_records_attributes(self, span_exporter):
        with create_span("unit.span", attributes={"query.partition": "1"}):
            pass

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "unit.span"
        assert span.attributes["query.partition"] == "1"
        assert get_trace_context()["span_id"] == format(span.context.span_id, "016x")
        assert get_trace_context()["trace_id"] == format(span.context.trace_id, "032x")

    def test_create_span_records_errors(self, span_exporter):
        with pytest.raises(ValueError), create_span("unit.failure"):
            raise ValueError("bad input")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_compile_and_build_are_traced(self, span_exporter, field_config, term_store):
        QueryCompiler("1").compile("solar", {"tag": ["diy"]}, field_config)
        DocumentBuilder(term_store, "1").build(Record(id=1, content_type="post"), field_config)

        spans = {span.name: span for span in span_exporter.get_finished_spans()}
        assert spans["query.compile"].attributes["query.constraints"] == 1
        assert spans["query.compile"].attributes["query.aggregations"] == 4
        assert spans["document.build"].attributes["document.content_type"] == "post"
        assert "mapping.build" not in spans


@pytest.mark.unit
class TestMetrics:
    def test_track_latency_observes_on_error(self):
        with pytest.raises(RuntimeError), track_latency(COMPILE_LATENCY, operation="unit-test"):
            raise RuntimeError("boom")

        assert b'faceted_search_compile_latency_seconds_count{operation="unit-test"} 1.0' in get_metrics()

    def test_counters_are_exported(self):
        SEARCH_ERRORS.labels(operation="search", error_type="UnitTestError").inc()

        output = get_metrics()

        assert b'error_type="UnitTestError"' in output
        assert get_metrics_content_type().startswith("text/plain")
