"""
Unit tests for logging setup.
"""
import pytest
from loguru import logger

from tablesource.core.config import LoggingConfig
from tablesource.core.logging import LoggerMixin, component_filter, setup_logging


class Probe(LoggerMixin):
    pass


class SourceDatabase(LoggerMixin):
    pass


def make_record(level, component=None):
    extra = {"component": component} if component else {}
    return {"level": logger.level(level), "extra": extra}


@pytest.mark.unit
class TestComponentFilter:
    """Test per-component level filtering."""

    def test_default_level(self):
        """Test components without an override."""
        accept = component_filter("INFO", {})
        assert accept(make_record("INFO", "RowReader"))
        assert not accept(make_record("DEBUG", "RowReader"))

    def test_component_override(self):
        """Test that an override raises or lowers one component only."""
        accept = component_filter("INFO", {"SourceDatabase": "WARNING", "SplitPlanner": "DEBUG"})

        assert not accept(make_record("INFO", "SourceDatabase"))
        assert accept(make_record("WARNING", "SourceDatabase"))
        assert accept(make_record("DEBUG", "SplitPlanner"))
        assert not accept(make_record("DEBUG", "RowReader"))

    def test_unbound_records(self):
        """Test records logged without a component."""
        accept = component_filter("WARNING", {"tablesource": "DEBUG"})
        assert accept(make_record("DEBUG"))


@pytest.mark.unit
def test_file_sink_records_component(tmp_path):
    """Test that component loggers write to the configured file, honoring overrides."""
    log_file = tmp_path / "logs" / "tablesource.log"
    setup_logging(LoggingConfig(level="DEBUG", file_path=str(log_file),
                                component_levels={"SourceDatabase": "WARNING"}))
    try:
        Probe().logger.info("planning started")
        SourceDatabase().logger.debug("connection acquired")
        SourceDatabase().logger.warning("connection invalidated")
        logger.info("unbound message")
    finally:
        logger.remove()

    content = log_file.read_text()
    assert "Probe | planning started" in content
    assert "tablesource | unbound message" in content
    assert "connection acquired" not in content
    assert "SourceDatabase | connection invalidated" in content
