from __future__ import annotations

import io
import logging

import pytest

from exitnode.observability.logger import logger

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class _Collect(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=1)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def records():
    handler = _Collect()
    root = logging.getLogger("exitnode")
    root.addHandler(handler)
    yield handler.records
    root.removeHandler(handler)


class TestBoundLogger:
    def test_brace_formatting(self, records):
        logger.info("Creating {name} in {zone}", name="vm", zone="z1")
        assert records[-1].getMessage() == "Creating vm in z1"

    def test_bind_attaches_extras(self, records):
        log = logger.bind(provider="gce")
        log.warning("hello")
        assert records[-1].provider == "gce"
        assert records[-1].levelno == logging.WARNING

    def test_bind_is_immutable(self):
        base = logger.bind(provider="ec2")
        child = base.bind(region="eu-west-1")
        assert base.extras == {"provider": "ec2"}
        assert child.extras == {"provider": "ec2", "region": "eu-west-1"}

    def test_record_named_after_calling_module(self, records):
        logger.debug("from test")
        assert records[-1].name == "exitnode"
        assert records[-1].funcName == "test_record_named_after_calling_module"

    def test_exception_carries_traceback(self, records):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("failed")
        assert records[-1].exc_info is not None


class TestSinks:
    def test_stream_sink_with_provider_prefix(self):
        stream = io.StringIO()
        handler_id = logger.add(stream, level="INFO")
        try:
            logger.bind(provider="civo").info("Instance {id} accepted", id="c1")
            logger.debug("hidden")
        finally:
            logger.remove(handler_id)
        out = stream.getvalue()
        assert "[civo] Instance c1 accepted" in out
        assert "hidden" not in out

    def test_file_sink(self, tmp_path):
        path = tmp_path / "exitnode.log"
        handler_id = logger.add(str(path), level="DEBUG")
        try:
            logger.debug("written {n}", n=1)
        finally:
            logger.remove(handler_id)
        assert "written 1" in path.read_text()

    def test_disable_enable(self, records):
        logger.disable()
        try:
            logger.info("dropped")
        finally:
            logger.enable()
        assert all(r.getMessage() != "dropped" for r in records)
