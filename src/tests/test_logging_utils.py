"""Tests for service logging utilities."""

import logging

from food_costing.services.logging_utils import get_service_logger, log_operation


class TestGetServiceLogger:
    def test_uses_last_module_component(self):
        logger = get_service_logger("food_costing.services.recipe_service")
        assert logger.name == "food_costing.services.recipe_service"

    def test_plain_name(self):
        assert get_service_logger("custom").name == "food_costing.services.custom"


class TestLogOperation:
    def test_message_and_context(self, caplog):
        logger = get_service_logger("test_ops")
        with caplog.at_level(logging.INFO, logger=logger.name):
            log_operation(logger, "create_recipe", "success", recipe_id=7, line_count=2)

        record = caplog.records[-1]
        assert record.getMessage() == "create_recipe: success"
        assert record.levelno == logging.INFO
        assert record.operation == "create_recipe"
        assert record.outcome == "success"
        assert record.recipe_id == 7
        assert record.line_count == 2

    def test_level_is_respected(self, caplog):
        logger = get_service_logger("test_ops_level")
        with caplog.at_level(logging.INFO, logger=logger.name):
            log_operation(logger, "compute_recipe_cost", "success", level=logging.DEBUG)
        assert caplog.records == []
