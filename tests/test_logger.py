from typing import List

from loguru import logger

from coreason_cas_store.utils.logger import _install_package_sink, configure_logging, redact


def test_redact_keeps_short_prefix() -> None:
    assert redact("PGTIOU-1-abcdefghijk") == "PGTIOU***"
    assert redact("ST-1") == "***"
    assert redact(None) == "<none>"
    assert redact("") == "<none>"


def test_configure_logging_keeps_foreign_sinks() -> None:
    logs: List[str] = []
    handler_id = logger.add(lambda msg: logs.append(msg.record["message"]), level="INFO")
    try:
        configure_logging("DEBUG")
        configure_logging("WARNING")
        logger.info("still captured")
    finally:
        logger.remove(handler_id)
        configure_logging("INFO")

    assert logs == ["still captured"]


def test_package_sink_install_keeps_host_sinks() -> None:
    logs: List[str] = []
    handler_id = logger.add(lambda msg: logs.append(msg.record["message"]), level="INFO")
    try:
        _install_package_sink()
        _install_package_sink()
        logger.info("host sink survives")
    finally:
        logger.remove(handler_id)
        configure_logging("INFO")

    assert logs == ["host sink survives"]
