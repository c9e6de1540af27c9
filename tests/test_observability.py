"""Tests for the observability layer: events, emitter, logging.

Coverage:
- Events: frozen immutability, serialization
- Emitter: emit no-op when unconfigured, configure idempotency, reset
- Logging: formatter × destination composition, get_logger pre/post config
- Integration: engine and index run cleanly with the emitter configured
"""

from __future__ import annotations

import json
import logging
from dataclasses import FrozenInstanceError, asdict

import pytest

from semkit.observability.config import ObservabilityConfig
from semkit.observability.events import (
    ALL_EVENTS,
    EmbeddingBatchCompleted,
    EmbeddingFailed,
    ModelLoaded,
    VecIndexCleared,
    VecIndexUpdated,
    VecSearchResults,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_observability():
    """Reset emitter state and root log level before and after each test."""
    from semkit.observability.emitter import reset

    root_level = logging.getLogger().level
    reset()
    yield
    reset()
    logging.getLogger().setLevel(root_level)


@pytest.fixture()
def configured():
    """Configure observability with stderr + structlog defaults."""
    from semkit.observability.emitter import configure

    cfg = ObservabilityConfig(
        log_formatter="structlog",
        log_destination="stderr",
        log_level="DEBUG",
        log_format="json",
    )
    return configure(cfg)


class ToyEmbedding:
    def embed(self, texts):
        return [[float(len(t)), 1.0] for t in texts]

    @property
    def dimensions(self):
        return 2


# =============================================================================
# Event dataclass tests
# =============================================================================


class TestEvents:
    """All events are frozen dataclasses with correct fields."""

    def test_model_loaded_fields(self):
        e = ModelLoaded(model_name="m", backend="ollama", dimensions=768, latency_ms=12.5)
        assert e.dimensions == 768
        with pytest.raises(FrozenInstanceError):
            e.dimensions = 384  # type: ignore[misc]

    def test_search_results_serializable(self):
        e = VecSearchResults(
            candidates=100,
            result_count=5,
            top_k=5,
            threshold=0.2,
            top_score=0.93,
            score_spread=0.4,
            filtered=False,
            latency_ms=1.2,
        )
        d = asdict(e)
        assert d["candidates"] == 100
        # Must be JSON-serializable
        json.dumps(d)

    def test_all_events_frozen(self):
        """Every event type must be frozen."""
        events = [
            ModelLoaded("m", "sentence-transformers", 384, 10.0),
            EmbeddingBatchCompleted("m", 2, 40, 30.0),
            EmbeddingFailed("m", "RuntimeError('x')", "hello"),
            VecIndexUpdated(3, 10, False, 2.0),
            VecIndexCleared(10),
            VecSearchResults(10, 3, 5, 0.0, 0.9, 0.2, True, 1.0),
        ]
        assert {type(e) for e in events} == set(ALL_EVENTS)
        for event in events:
            d = asdict(event)
            first_field = list(d.keys())[0]
            with pytest.raises(FrozenInstanceError):
                setattr(event, first_field, "changed")


# =============================================================================
# Emitter tests
# =============================================================================


class TestEmitter:
    """emit() is no-op when not configured, works after configure()."""

    def test_emit_noop_when_not_configured(self):
        from semkit.observability.emitter import emit

        # Should not raise
        emit(VecIndexCleared(removed=1))

    def test_configure_returns_emitter(self, configured):
        from pyventus.events import EventEmitter

        assert isinstance(configured, EventEmitter)

    def test_configure_idempotent(self):
        from semkit.observability.emitter import configure

        cfg = ObservabilityConfig(log_destination="stderr")
        e1 = configure(cfg)
        e2 = configure(cfg)
        assert e1 is e2

    def test_is_configured(self):
        from semkit.observability.emitter import configure, is_configured

        assert not is_configured()
        configure(ObservabilityConfig(log_destination="stderr"))
        assert is_configured()

    def test_reset_clears_state(self, configured):
        from semkit.observability.emitter import is_configured, reset

        assert is_configured()
        reset()
        assert not is_configured()

    def test_reset_detaches_installed_handler(self, configured):
        from semkit.observability import logging as semkit_logging
        from semkit.observability.emitter import reset

        handler = semkit_logging._installed_handler
        assert handler in logging.getLogger().handlers
        reset()
        assert handler not in logging.getLogger().handlers
        assert semkit_logging._installed_handler is None

    def test_emit_after_configure(self, configured):
        from semkit.observability.emitter import emit

        emit(VecIndexUpdated(count_added=1, total_size=1, replaced=False, latency_ms=0.1))


# =============================================================================
# Logging tests
# =============================================================================


class TestLogging:
    """LogFormatter × LogDestination composition."""

    def test_structlog_formatter_setup(self):
        from semkit.observability.logging import StructlogFormatter

        result = StructlogFormatter().setup(ObservabilityConfig(log_format="json"))
        assert isinstance(result, logging.Formatter)

    def test_structlog_console_formatter(self):
        from semkit.observability.logging import StructlogFormatter

        result = StructlogFormatter().setup(ObservabilityConfig(log_format="console"))
        assert isinstance(result, logging.Formatter)

    def test_stdlib_formatter_setup(self):
        from semkit.observability.logging import StdlibFormatter

        result = StdlibFormatter().setup(ObservabilityConfig(log_format="json"))
        assert isinstance(result, logging.Formatter)

    def test_get_logger_before_config(self):
        from semkit.observability.logging import _KeywordLogger, get_logger

        assert isinstance(get_logger("test"), _KeywordLogger)

    def test_get_logger_after_config(self, configured):
        from semkit.observability.logging import get_logger

        lg = get_logger("test")
        assert hasattr(lg, "info")
        assert hasattr(lg, "debug")
        assert hasattr(lg, "warning")

    def test_stderr_destination(self):
        from semkit.observability.logging import StderrDestination

        dest = StderrDestination()
        handler = dest.create_handler(logging.Formatter())
        assert isinstance(handler, logging.StreamHandler)
        dest.shutdown()

    def test_jsonl_file_destination(self, tmp_path):
        from semkit.observability.logging import JsonlFileDestination

        cfg = ObservabilityConfig(jsonl_path=str(tmp_path / "logs" / "test.jsonl"))
        dest = JsonlFileDestination(cfg)
        handler = dest.create_handler(logging.Formatter("%(message)s"))
        assert isinstance(handler, logging.FileHandler)
        assert (tmp_path / "logs").is_dir()
        dest.shutdown()

    def test_stdlib_json_lines_written(self, tmp_path):
        from semkit.observability.logging import get_logger, setup_logging, shutdown_logging

        path = tmp_path / "semkit.jsonl"
        setup_logging(
            ObservabilityConfig(
                log_formatter="stdlib",
                log_destination="jsonl",
                log_level="DEBUG",
                log_format="json",
                jsonl_path=str(path),
            )
        )
        get_logger("semkit.test").info("vec.index_updated", count_added=3, total_size=7)
        shutdown_logging()

        [line] = path.read_text().splitlines()
        record = json.loads(line)
        assert record["event"] == "vec.index_updated"
        assert record["level"] == "info"
        assert record["logger"] == "semkit.test"
        assert record["count_added"] == 3
        assert record["total_size"] == 7

    def test_stdlib_logger_records_exception(self, tmp_path):
        from semkit.observability.logging import get_logger, setup_logging, shutdown_logging

        path = tmp_path / "semkit.jsonl"
        setup_logging(
            ObservabilityConfig(
                log_formatter="stdlib",
                log_destination="jsonl",
                log_level="INFO",
                jsonl_path=str(path),
            )
        )
        try:
            raise RuntimeError("model crashed")
        except RuntimeError:
            get_logger("semkit.test").exception("embedding.failed")
        shutdown_logging()

        record = json.loads(path.read_text().splitlines()[0])
        assert record["level"] == "error"
        assert "model crashed" in record["exception"]

    def test_stdlib_logger_respects_level(self, tmp_path):
        from semkit.observability.logging import get_logger, setup_logging, shutdown_logging

        path = tmp_path / "semkit.jsonl"
        setup_logging(
            ObservabilityConfig(
                log_formatter="stdlib",
                log_destination="jsonl",
                log_level="WARNING",
                jsonl_path=str(path),
            )
        )
        get_logger("semkit.test").debug("vec.search_results", result_count=1)
        shutdown_logging()
        assert path.read_text() == ""

    def test_register_custom_formatter(self):
        from semkit.observability.logging import _FORMATTERS, register_formatter

        class CustomFormatter:
            def setup(self, config):
                return logging.Formatter()

            def get_logger(self, name, **kwargs):
                return logging.getLogger(name)

        register_formatter("custom", CustomFormatter)
        assert "custom" in _FORMATTERS
        # Cleanup
        del _FORMATTERS["custom"]

    def test_register_custom_destination_with_config(self):
        from semkit.observability.logging import (
            _DESTINATIONS,
            register_destination,
            setup_logging,
            shutdown_logging,
        )

        seen = []

        class CustomDest:
            def __init__(self, config):
                seen.append(config.log_level)

            def create_handler(self, formatter):
                return logging.NullHandler()

            def shutdown(self):
                pass

        register_destination("custom", CustomDest, takes_config=True)
        try:
            setup_logging(ObservabilityConfig(log_destination="custom", log_level="ERROR"))
            assert seen == ["ERROR"]
        finally:
            shutdown_logging()
            del _DESTINATIONS["custom"]

    def test_setup_unknown_formatter_raises(self):
        from semkit.observability.logging import setup_logging

        cfg = ObservabilityConfig(log_formatter="nonexistent")
        with pytest.raises(ValueError, match="Unknown log formatter"):
            setup_logging(cfg)

    def test_setup_unknown_destination_raises(self):
        from semkit.observability.logging import setup_logging

        cfg = ObservabilityConfig(log_destination="nonexistent")
        with pytest.raises(ValueError, match="Unknown log destination"):
            setup_logging(cfg)

    def test_setup_unknown_level_raises(self):
        from semkit.observability.logging import setup_logging

        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(ObservabilityConfig(log_level="chatty"))


# =============================================================================
# Config tests
# =============================================================================


class TestConfig:
    """ObservabilityConfig env-var driven defaults."""

    def test_default_values(self):
        cfg = ObservabilityConfig()
        assert cfg.log_formatter == "structlog"
        assert cfg.log_destination == "stderr"
        assert cfg.log_level == "INFO"
        assert cfg.log_format == "json"
        assert cfg.jsonl_path is None

    def test_env_values(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SEMKIT_LOG_FORMATTER", "stdlib")
        monkeypatch.setenv("SEMKIT_LOG_DESTINATION", "jsonl")
        monkeypatch.setenv("SEMKIT_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("SEMKIT_LOG_PATH", str(tmp_path / "out.jsonl"))
        cfg = ObservabilityConfig()
        assert cfg.log_formatter == "stdlib"
        assert cfg.log_destination == "jsonl"
        assert cfg.log_level == "DEBUG"
        assert cfg.jsonl_path == str(tmp_path / "out.jsonl")


# =============================================================================
# Linker tests
# =============================================================================


class TestLinker:
    def test_linker_is_event_linker(self):
        from pyventus.events import EventLinker

        from semkit.observability.linker import SemkitEventLinker

        assert issubclass(SemkitEventLinker, EventLinker)


# =============================================================================
# Integration: engine and index emit through a configured emitter
# =============================================================================


class TestPipelineEvents:
    """Engine and index operations run cleanly with subscribers attached."""

    def test_index_and_search(self, configured):
        from semkit.engine import SemanticEngine
        from semkit.vec.index import SimilarityIndex

        engine = SemanticEngine(model=ToyEmbedding())
        engine.initialize()
        index = SimilarityIndex(engine)
        index.index(["a", "bb", "ccc"])
        results = index.search("bb", {"top_k": 2})
        assert len(results) == 2
        index.clear()
        assert len(index) == 0

    def test_embedding_failure(self, configured):
        from semkit.engine import SemanticEngine
        from semkit.errors import EmbeddingFailedError

        class Broken(ToyEmbedding):
            def embed(self, texts):
                raise RuntimeError("boom")

        engine = SemanticEngine(model=Broken())
        engine.initialize()
        with pytest.raises(EmbeddingFailedError):
            engine.embed("hello")
