"""
util_logger tests: component configs, JSON output, custom dimensions.
"""

import dataclasses
import json
import logging

from util_logger import ComponentConfig, ComponentType, JSONFormatter, LogLevel, LoggerFactory


class TestComponentConfig:

    def test_only_settings_the_factory_applies(self):
        names = {f.name for f in dataclasses.fields(ComponentConfig)}
        assert names == {"component_type", "log_level"}

    def test_custom_level_applied(self):
        config = ComponentConfig(ComponentType.ADAPTER, LogLevel.WARNING)
        logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "LevelTest", config=config)
        assert logger.level == logging.WARNING


class TestLoggerOutput:

    def test_custom_dimensions_carry_component(self, caplog):
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DimensionsTest")

        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("hello", extra={'custom_dimensions': {'resource_id': '42'}})

        dims = caplog.records[-1].custom_dimensions
        assert dims == {'component_type': 'service', 'component_name': 'DimensionsTest', 'resource_id': '42'}

    def test_json_formatter_single_line(self):
        record = logging.LogRecord("service.X", logging.INFO, __file__, 1, "msg %s", ("a",), None)
        record.custom_dimensions = {'storage_key': 'products/42'}

        line = JSONFormatter().format(record)

        assert "\n" not in line
        parsed = json.loads(line)
        assert parsed['message'] == "msg a"
        assert parsed['customDimensions'] == {'storage_key': 'products/42'}

    def test_one_handler_per_logger(self):
        first = LoggerFactory.create_logger(ComponentType.FACTORY, "HandlerTest")
        second = LoggerFactory.create_logger(ComponentType.FACTORY, "HandlerTest")
        assert first is second
        assert sum(isinstance(h.formatter, JSONFormatter) for h in second.handlers) == 1
